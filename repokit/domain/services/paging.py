"""Paged query engine.

to_paged_list() turns a filtered, ordered data source plus page coordinates
into a Page.  The source must push both operations down to where the data
lives: one bounded COUNT and one OFFSET/LIMIT fetch.  Nothing here loads the
full result set.

Consistency: the count and the fetch are two separate round-trips and no
snapshot is taken between them.  A row inserted or deleted by another writer
in between can make total_count disagree with the fetched items (for example
a short last page).  Callers that need both to agree must run the call inside
a transaction with suitable isolation, e.g.::

    async with uow.begin_transaction():
        page = await repo.get_paged_list(page_index=2, page_size=50)

Cancellation: cancelling the awaiting task aborts whichever query is in
flight and CancelledError propagates; a partial page is never returned.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from ..exceptions import InvalidArgumentError
from ..models.paging import Page
from ..models.query import Sort
from .ordering import sort_sequence

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
U = TypeVar("U")


@runtime_checkable
class PageSource(Protocol[T_co]):
    """A filtered, ordered query that can be counted and sliced."""

    async def count(self) -> int:
        """Number of rows matching the filter, ignoring any window."""
        ...

    async def fetch(self, offset: int, limit: int) -> list[T_co]:
        """Rows in [offset, offset + limit) under the current ordering."""
        ...

    async def all(self) -> list[T_co]:
        """Every matching row, in order."""
        ...


class SequenceSource(Generic[T]):
    """PageSource over rows that are already in memory.

    where() and order_by() return new sources; the underlying rows are never
    copied until a query runs.
    """

    def __init__(
        self,
        rows: Iterable[T],
        predicate: Callable[[T], bool] | None = None,
        sort: Sort | None = None,
    ) -> None:
        self._rows = rows if isinstance(rows, (list, tuple)) else list(rows)
        self._predicate = predicate
        self._sort = sort

    def where(self, predicate: Callable[[T], bool]) -> SequenceSource[T]:
        current = self._predicate
        if current is None:
            combined = predicate
        else:
            def combined(row: T) -> bool:
                return current(row) and predicate(row)

        return SequenceSource(self._rows, combined, self._sort)

    def order_by(self, sort: Sort) -> SequenceSource[T]:
        return SequenceSource(self._rows, self._predicate, sort)

    def _view(self) -> list[T]:
        rows = self._rows
        if self._predicate is not None:
            rows = [row for row in rows if self._predicate(row)]
        return sort_sequence(rows, self._sort)

    async def count(self) -> int:
        if self._predicate is None:
            return len(self._rows)
        return sum(1 for row in self._rows if self._predicate(row))

    async def fetch(self, offset: int, limit: int) -> list[T]:
        return self._view()[offset : offset + limit]

    async def all(self) -> list[T]:
        return self._view()


def validate_page_request(page_index: int, page_size: int, index_from: int = 0) -> None:
    """Reject impossible page coordinates before any query is issued.

    A negative page_index is rejected rather than clamped to zero.
    """
    if page_size <= 0:
        raise InvalidArgumentError(f"page_size must be > 0, got {page_size}")
    if page_index < 0:
        raise InvalidArgumentError(f"page_index must be >= 0, got {page_index}")
    if index_from not in (0, 1):
        raise InvalidArgumentError(f"index_from must be 0 or 1, got {index_from}")


async def to_paged_list(
    source: PageSource[Any],
    page_index: int,
    page_size: int,
    index_from: int = 0,
    projector: Callable[[Any], U] | None = None,
    timeout: float | None = None,
) -> Page[Any]:
    """Compute one page of source.

    Args:
        source: filtered and ordered data source.
        page_index: zero-based page to fetch.
        page_size: maximum rows per page.
        index_from: display origin recorded on the page (0 or 1).
        projector: applied to each fetched row, never to the whole set.
        timeout: seconds allowed for count and fetch together; TimeoutError
            propagates when exceeded.

    Raises:
        InvalidArgumentError: page_size <= 0, page_index < 0 or bad index_from.
    """
    validate_page_request(page_index, page_size, index_from)
    skip = page_index * page_size

    async with asyncio.timeout(timeout):
        total_count = await source.count()
        rows = await source.fetch(skip, page_size)

    items = tuple(projector(row) for row in rows) if projector is not None else tuple(rows)
    logger.debug(
        "Paged query: page_index=%d page_size=%d total_count=%d returned=%d",
        page_index,
        page_size,
        total_count,
        len(items),
    )
    return Page(
        items=items,
        page_index=page_index,
        page_size=page_size,
        total_count=total_count,
        index_from=index_from,
    )
