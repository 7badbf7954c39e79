"""Generic SQLAlchemy implementation of Repository[T]."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import Select, func, literal_column, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.domain.exceptions import EntityNotFoundError
from repokit.domain.models.enums import Direction
from repokit.domain.models.paging import Page
from repokit.domain.models.query import KeySchema, Sort
from repokit.domain.repositories.base import Repository
from repokit.domain.services.navigation import neighbour, shifted_key
from repokit.domain.services.paging import to_paged_list, validate_page_request
from repokit.infrastructure.database import settings
from repokit.infrastructure.persistence.query import (
    SqlPageSource,
    apply_criteria,
    key_predicate,
    key_schema_for,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlRepository(Repository[T]):
    """Repository over one mapped entity type, bound to one AsyncSession.

    Use directly with an explicit model, or subclass and set `model`:

        class CityRepository(SqlRepository[City]):
            model = City

    Commands stage changes on the session; the owning unit of work decides
    when they are flushed and committed.
    """

    model: type[T]

    def __init__(
        self,
        session: AsyncSession,
        model: type[T] | None = None,
        *,
        default_page_size: int | None = None,
        navigation_fast_path: bool | None = None,
    ) -> None:
        resolved = model or getattr(type(self), "model", None)
        if resolved is None:
            raise TypeError(f"{type(self).__name__} requires a model")
        self._session = session
        self.model = resolved
        self._key_schema: KeySchema = key_schema_for(resolved)
        self._default_page_size = (
            settings.default_page_size if default_page_size is None else default_page_size
        )
        self._fast_path = (
            settings.navigation_fast_path if navigation_fast_path is None else navigation_fast_path
        )

    @property
    def key_schema(self) -> KeySchema:
        return self._key_schema

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ordering(self, order: Sort | None) -> Sort:
        return order if order else self._key_schema.as_sort()

    def _select(self, predicate: Any = None, order: Sort | None = None) -> Select[Any]:
        return apply_criteria(select(self.model), self.model, predicate, self._ordering(order))

    def _source(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
    ) -> SqlPageSource:
        return SqlPageSource(self._session, self._select(predicate, order), include)

    def _projected_source(
        self,
        selector: Any,
        predicate: Any,
        order: Sort | None,
        joins: Sequence[Any] = (),
    ) -> SqlPageSource:
        columns = selector if isinstance(selector, (list, tuple)) else (selector,)
        stmt = select(*columns).select_from(self.model)
        for target in joins:
            stmt = stmt.join(target)
        stmt = apply_criteria(stmt, self.model, predicate, self._ordering(order))
        return SqlPageSource(self._session, stmt)

    async def _aggregate(self, expression: Any, predicate: Any) -> Any:
        stmt = apply_criteria(select(expression).select_from(self.model), self.model, predicate)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_all(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
    ) -> list[T]:
        return await self._source(predicate, order, include).all()

    async def get_projected_list(
        self,
        selector: Any,
        predicate: Any = None,
        order: Sort | None = None,
        joins: Sequence[Any] = (),
    ) -> list[Any]:
        """Select only the given column(s); one column yields scalars, several yield rows.

        The query is rooted at the repository's model.  Columns of related
        entities need the relationship (or target) listed in joins, e.g.
        joins=[City.country] to select Country.name from the City repository.
        """
        return await self._projected_source(selector, predicate, order, joins).all()

    async def get_list(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
        page_index: int | None = None,
        page_size: int | None = None,
    ) -> list[T]:
        """Matching entities, optionally limited to one page window (no count query).

        Passing only page_index windows with the default page size.
        """
        source = self._source(predicate, order, include)
        if page_index is None and page_size is None:
            return await source.all()
        index = page_index or 0
        size = self._default_page_size if page_size is None else page_size
        validate_page_request(index, size)
        return await source.fetch(index * size, size)

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
        return await to_paged_list(
            self._source(predicate, order, include),
            page_index,
            self._default_page_size if page_size is None else page_size,
            index_from=index_from,
            projector=projector,
            timeout=timeout,
        )

    async def get_paged_list_projected(
        self,
        selector: Any,
        predicate: Any = None,
        order: Sort | None = None,
        page_index: int = 0,
        page_size: int | None = None,
        index_from: int = 0,
        timeout: float | None = None,
        joins: Sequence[Any] = (),
    ) -> Page[Any]:
        """Like get_paged_list, but the projection happens in SQL (see get_projected_list)."""
        return await to_paged_list(
            self._projected_source(selector, predicate, order, joins),
            page_index,
            self._default_page_size if page_size is None else page_size,
            index_from=index_from,
            timeout=timeout,
        )

    async def get_first_or_default(
        self,
        predicate: Any = None,
        order: Sort | None = None,
        include: Sequence[Any] = (),
    ) -> T | None:
        rows = await self._source(predicate, order, include).fetch(0, 1)
        return rows[0] if rows else None

    async def find(self, *key_values: Any) -> T | None:
        values = self._key_schema.check_arity(key_values)
        identity = values[0] if len(values) == 1 else values
        return await self._session.get(self.model, identity)

    async def from_sql(self, sql: str, **params: Any) -> list[T]:
        """Entities loaded from a raw SQL statement with bound :params."""
        stmt = select(self.model).from_statement(text(sql))
        result = await self._session.execute(stmt, params)
        return list(result.scalars().all())

    async def count(self, predicate: Any = None) -> int:
        return await self._aggregate(func.count(), predicate)

    async def exists(self, predicate: Any = None) -> bool:
        inner = apply_criteria(select(literal_column("1")).select_from(self.model), self.model, predicate)
        result = await self._session.execute(select(inner.exists()))
        return bool(result.scalar())

    async def max(self, selector: Any, predicate: Any = None) -> Any:
        """Largest selector value among matches, or None when nothing matches."""
        return await self._aggregate(func.max(selector), predicate)

    async def min(self, selector: Any, predicate: Any = None) -> Any:
        return await self._aggregate(func.min(selector), predicate)

    async def sum(self, selector: Any, predicate: Any = None) -> Any:
        """Sum of selector over matches; 0 when nothing matches."""
        return await self._aggregate(func.coalesce(func.sum(selector), 0), predicate)

    async def average(self, selector: Any, predicate: Any = None) -> Decimal | float | None:
        return await self._aggregate(func.avg(selector), predicate)

    # ------------------------------------------------------------------
    # Navigation by primary key
    # ------------------------------------------------------------------

    async def _neighbour(self, key_values: tuple[Any, ...], step: int) -> T | None:
        values = self._key_schema.check_arity(key_values)
        if self._fast_path and self._key_schema.is_single_integer:
            candidate = await self.find(*shifted_key(self._key_schema, values, step))
            if candidate is not None:
                return candidate

        logger.warning(
            "Loading every %s ordered by %s to locate the row %s of %s",
            self.model.__name__,
            ", ".join(self._key_schema.names),
            "after" if step > 0 else "before",
            values,
        )
        ordered = await self._source(order=self._key_schema.as_sort()).all()
        return neighbour(ordered, self._key_schema, values, step)

    async def get_next_by_id(self, *key_values: Any) -> T | None:
        return await self._neighbour(key_values, 1)

    async def get_previous_by_id(self, *key_values: Any) -> T | None:
        return await self._neighbour(key_values, -1)

    async def get_first(self) -> T | None:
        return await self.get_first_or_default(order=self._key_schema.as_sort(Direction.ASC))

    async def get_last(self) -> T | None:
        return await self.get_first_or_default(order=self._key_schema.as_sort(Direction.DESC))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def insert(self, *entities: T) -> None:
        self._session.add_all(entities)

    async def update(self, *entities: T) -> None:
        for entity in entities:
            key = self._key_schema.values_of(entity)
            if entity not in self._session and await self.find(*key) is None:
                raise EntityNotFoundError(f"{self.model.__name__} {key} not found")
            await self._session.merge(entity)

    async def insert_or_update(self, entity: T) -> None:
        """Insert when the entity's key is unset or absent from the database, else merge."""
        key = self._key_schema.values_of(entity)
        if any(value is None for value in key) or await self.find(*key) is None:
            self._session.add(entity)
        else:
            await self._session.merge(entity)

    async def delete(self, *entities: T) -> None:
        for entity in entities:
            if entity not in self._session:
                entity = await self._session.merge(entity)
            await self._session.delete(entity)

    async def delete_by_id(self, *key_values: Any) -> None:
        entity = await self.find(*key_values)
        if entity is None:
            logger.debug("%s %s not found; nothing to delete", self.model.__name__, key_values)
            return
        await self._session.delete(entity)

    # ------------------------------------------------------------------
    # Key helpers
    # ------------------------------------------------------------------

    def where_key(self, *key_values: Any) -> Any:
        """WHERE clause selecting the row with the given primary key."""
        return key_predicate(self.model, self._key_schema, key_values)
