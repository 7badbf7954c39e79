"""Unit of work interface: one save/transaction boundary over many repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar

from .base import Repository

T = TypeVar("T")


class UnitOfWork(ABC):
    """Coordinates the repositories that share one session.

    The set of repositories is fixed when the unit of work is built; asking
    for an unregistered entity type is an error, never a lazy creation.
    """

    @property
    @abstractmethod
    def repositories(self) -> Mapping[type, Repository[Any]]:
        """Read-only view of entity type -> repository."""

    @abstractmethod
    def get_repository(self, entity_type: type[T]) -> Repository[T]:
        """Return the repository registered for entity_type."""

    @abstractmethod
    async def save_changes(self) -> int:
        """Write all staged changes and commit.  Returns the number of affected objects."""

    @abstractmethod
    async def save_changes_with(self, *others: UnitOfWork) -> int:
        """Save the other units of work, then this one, as one logical operation."""

    @abstractmethod
    def begin_transaction(self) -> AbstractAsyncContextManager[Any]:
        """Explicit transaction scope; commits on success, rolls back on error."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged changes and roll back the current transaction."""

    @abstractmethod
    async def close(self) -> None:
        """Release the session.  Safe to call more than once."""

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
