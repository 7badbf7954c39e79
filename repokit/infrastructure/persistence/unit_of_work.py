"""SQLAlchemy unit of work: one AsyncSession shared by a fixed set of repositories."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from types import MappingProxyType
from typing import Any, TypeVar, cast

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from repokit.domain.exceptions import RepositoryNotRegisteredError
from repokit.domain.repositories.base import Repository
from repokit.domain.repositories.unit_of_work import UnitOfWork

from .repositories.base import SqlRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

RepositoryFactory = Callable[[AsyncSession], Repository[Any]]


def _default_factory(entity_type: type) -> RepositoryFactory:
    def factory(session: AsyncSession) -> Repository[Any]:
        return SqlRepository(session, entity_type)

    return factory


class SqlUnitOfWork(UnitOfWork):
    """Builds every repository once, up front, bound to the same session.

    registry maps an entity type to a factory taking the session; a plain
    iterable of entity types gets a generic SqlRepository for each.  Custom
    repositories are registered by passing their class (or any callable
    accepting the session) as the factory.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: Mapping[type, RepositoryFactory] | Iterable[type],
    ) -> None:
        self._session = session
        if not isinstance(registry, Mapping):
            registry = {entity_type: _default_factory(entity_type) for entity_type in registry}
        self._repositories: Mapping[type, Repository[Any]] = MappingProxyType(
            {entity_type: factory(session) for entity_type, factory in registry.items()}
        )
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def repositories(self) -> Mapping[type, Repository[Any]]:
        return self._repositories

    def get_repository(self, entity_type: type[T]) -> Repository[T]:
        try:
            return cast(Repository[T], self._repositories[entity_type])
        except KeyError:
            raise RepositoryNotRegisteredError(entity_type) from None

    def _pending_count(self) -> int:
        return len(self._session.new) + len(self._session.dirty) + len(self._session.deleted)

    async def flush(self) -> int:
        """Send staged changes to the database without committing."""
        pending = self._pending_count()
        await self._session.flush()
        return pending

    async def save_changes(self) -> int:
        pending = self._pending_count()
        await self._session.commit()
        logger.debug("Committed %d pending object(s)", pending)
        return pending

    async def save_changes_with(self, *others: UnitOfWork) -> int:
        """Flush every unit of work first, then commit them in order.

        Flushing all sessions before any commit means constraint violations in
        any of them abort the whole operation with nothing committed.  Commits
        themselves are not two-phase: if a later commit fails after an earlier
        one succeeded, the earlier one stays committed.  Sessions that have not
        committed are rolled back before the error propagates.
        """
        units: list[UnitOfWork] = [*others, self]
        flushed: dict[int, int] = {}
        total = 0
        committed = 0
        try:
            for position, unit in enumerate(units):
                if isinstance(unit, SqlUnitOfWork):
                    flushed[position] = await unit.flush()
            for position, unit in enumerate(units):
                saved = await unit.save_changes()
                total += flushed.get(position, saved)
                committed += 1
        except Exception:
            logger.warning("Saving %d unit(s) of work failed after %d commit(s)", len(units), committed)
            for unit in units[committed:]:
                try:
                    await unit.rollback()
                except Exception:
                    logger.warning("Rolling back %r failed", unit, exc_info=True)
            raise
        return total

    @asynccontextmanager
    async def begin_transaction(self) -> AsyncIterator[AsyncSessionTransaction | None]:
        """Commit on clean exit, roll back on error.

        A session that already autobegan (any earlier read does that) keeps its
        current transaction, which is then ended by this block.
        """
        if not self._session.in_transaction():
            async with self._session.begin() as transaction:
                yield transaction
            return
        try:
            yield self._session.get_transaction()
        except BaseException:
            await self._session.rollback()
            raise
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def execute_sql_command(self, sql: str, **params: Any) -> int:
        """Run a raw DML statement; returns the affected row count."""
        result = await self._session.execute(text(sql), params)
        return result.rowcount

    async def from_sql(self, entity_type: type[T], sql: str, **params: Any) -> list[T]:
        """Entities of entity_type loaded by a raw SQL query."""
        repository = self.get_repository(entity_type)
        if not isinstance(repository, SqlRepository):
            raise TypeError(f"Repository for {entity_type.__name__} does not support raw SQL")
        return await repository.from_sql(sql, **params)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._repositories = MappingProxyType({})
        await self._session.close()


def get_unit_of_work(
    session: AsyncSession,
    entities: Iterable[type],
    custom: Mapping[type, RepositoryFactory] | None = None,
) -> SqlUnitOfWork:
    """Wire a unit of work at the application boundary.

    Every entity in `entities` gets a generic SqlRepository unless `custom`
    supplies a factory for it:

        async def handler(session: AsyncSession = Depends(get_session)):
            uow = get_unit_of_work(session, [Country, City], {Blog: BlogRepository})
            city = await uow.get_repository(City).find(city_id)
    """
    registry: dict[type, RepositoryFactory] = {
        entity_type: _default_factory(entity_type) for entity_type in entities
    }
    if custom:
        registry.update(custom)
    return SqlUnitOfWork(session, registry)
