"""Generic repository base interface.

Repository[T] is the root data-access abstraction.  The SQLAlchemy
implementation lives in repokit/infrastructure/persistence/ and is wired per
session by the unit of work.

Design notes:
  - All methods are async to accommodate async database drivers.
  - T is the mapped entity type.  predicate, order and include are passed
    through to the query layer unchanged: a boolean SQL expression, a Sort and
    loader options respectively.
  - Omitting order means primary-key order, so offset/limit windows never
    depend on the storage order of the backend.
  - Commands (insert/update/delete) only stage changes; nothing is written
    until the owning unit of work saves.
  - Lookups that find nothing return None rather than raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from ..models.paging import Page
from ..models.query import Sort

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Abstract CRUD, query, paging and navigation interface for one entity type."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_all(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
    ) -> list[T]:
        """Return every entity matching predicate, in order."""

    @abstractmethod
    async def get_paged_list(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
        page_index: int = 0,
        page_size: int | None = None,
        index_from: int = 0,
        projector: Callable[[T], Any] | None = None,
        timeout: float | None = None,
    ) -> Page[Any]:
        """Return one page of matching entities plus pagination metadata."""

    @abstractmethod
    async def get_first_or_default(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
    ) -> T | None:
        """Return the first matching entity, or None."""

    @abstractmethod
    async def find(self, *key_values: Any) -> T | None:
        """Return the entity with the given primary key, or None."""

    @abstractmethod
    async def count(self, predicate: Any = None) -> int:
        """Number of entities matching predicate."""

    @abstractmethod
    async def exists(self, predicate: Any = None) -> bool:
        """Whether any entity matches predicate."""

    # ------------------------------------------------------------------
    # Navigation by primary key
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_next_by_id(self, *key_values: Any) -> T | None:
        """Entity following the given key in key order, or None."""

    @abstractmethod
    async def get_previous_by_id(self, *key_values: Any) -> T | None:
        """Entity preceding the given key in key order, or None."""

    @abstractmethod
    async def get_first(self) -> T | None:
        """Entity with the lowest key, or None when empty."""

    @abstractmethod
    async def get_last(self) -> T | None:
        """Entity with the highest key, or None when empty."""

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert(self, *entities: T) -> None:
        """Stage new entities for insertion."""

    @abstractmethod
    async def update(self, *entities: T) -> None:
        """Stage changes to existing entities.  Raises if one does not exist."""

    @abstractmethod
    async def delete(self, *entities: T) -> None:
        """Stage entities for deletion."""

    @abstractmethod
    async def delete_by_id(self, *key_values: Any) -> None:
        """Stage the entity with the given key for deletion; no-op when absent."""
