"""Errors raised by the repository layer.

Failures surfaced by the database driver or SQLAlchemy are never wrapped:
they propagate unchanged to the caller.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for errors raised by repokit itself."""


class InvalidArgumentError(RepositoryError, ValueError):
    """A caller-supplied argument is out of range (page size, page index, key arity)."""


class RepositoryNotRegisteredError(RepositoryError, LookupError):
    """The unit of work has no repository registered for the requested entity type."""

    def __init__(self, entity_type: type) -> None:
        super().__init__(f"No repository registered for {entity_type.__name__}")
        self.entity_type = entity_type


class EntityNotFoundError(RepositoryError, LookupError):
    """An entity addressed by primary key does not exist."""
