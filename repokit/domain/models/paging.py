"""Page value object returned by every paging operation.

A Page is built fresh per call and never mutated afterwards; items is a
tuple, so the window itself is fixed too.  The derived fields (total_pages,
has_previous_page, has_next_page) are computed from the stored coordinates
so they can never disagree with them.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

T = TypeVar("T")
U = TypeVar("U")


class Page(BaseModel, Generic[T]):
    """One page of a filtered, ordered result set.

    page_index is zero-based and is not corrected when it points past the
    last page: such a page simply has no items.  index_from (0 or 1) is the
    numbering origin callers want to display; it plays no part in the skip
    calculation.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: tuple[T, ...] = Field(default_factory=tuple)
    page_index: int = Field(ge=0)
    page_size: int = Field(gt=0)
    total_count: int = Field(ge=0)
    index_from: int = Field(default=0, ge=0, le=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.page_index + 1 < self.total_pages

    @property
    def display_index(self) -> int:
        """page_index expressed in the caller's numbering origin."""
        return self.page_index + self.index_from

    def map(self, func: Callable[[T], U]) -> Page[U]:
        """Project every item, keeping the pagination metadata."""
        return Page(
            items=tuple(func(item) for item in self.items),
            page_index=self.page_index,
            page_size=self.page_size,
            total_count=self.total_count,
            index_from=self.index_from,
        )

    @classmethod
    def empty(cls, page_index: int = 0, page_size: int = 20, index_from: int = 0) -> Page[T]:
        """A page with no rows and a zero total."""
        return cls(
            items=(),
            page_index=page_index,
            page_size=page_size,
            total_count=0,
            index_from=index_from,
        )
