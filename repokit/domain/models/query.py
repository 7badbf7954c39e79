"""Typed descriptions of ordering and primary-key shape.

These models say *what* to sort by and *which* columns identify a row; the
SQL and in-memory layers each compile them into their own form
(ORDER BY clauses, Python comparators, AND-ed equality predicates).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidArgumentError
from .enums import Direction


def field_name(field: Any) -> str:
    """Attribute name of a sort/key field given as a string or a mapped attribute."""
    if isinstance(field, str):
        return field
    key = getattr(field, "key", None)
    if isinstance(key, str):
        return key
    raise InvalidArgumentError(f"Cannot determine attribute name for {field!r}")


def read_field(row: Any, name: str) -> Any:
    """Read a (possibly dotted) attribute from an entity or a mapping row."""
    value = row
    for part in name.split("."):
        if isinstance(value, Mapping):
            value = value[part]
        else:
            value = getattr(value, part)
    return value


class SortKey(BaseModel):
    """One (field, direction) pair.

    field is either an attribute name ("name", "country.name") or a mapped
    SQLAlchemy attribute such as City.name.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    field: Any
    direction: Direction = Direction.ASC

    @property
    def name(self) -> str:
        return field_name(self.field)

    @property
    def descending(self) -> bool:
        return self.direction is Direction.DESC


class Sort(BaseModel):
    """Ordered sequence of sort keys; earlier keys take precedence."""

    model_config = ConfigDict(frozen=True)

    keys: tuple[SortKey, ...] = ()

    @classmethod
    def by(cls, *fields: Any, direction: Direction = Direction.ASC) -> Sort:
        return cls(keys=tuple(SortKey(field=f, direction=direction) for f in fields))

    @classmethod
    def parse(cls, text: str) -> Sort:
        """Build a Sort from "column [asc|desc], column [asc|desc], ..." text."""
        keys: list[SortKey] = []
        for chunk in text.split(","):
            parts = chunk.split()
            if not parts:
                continue
            if len(parts) > 2:
                raise InvalidArgumentError(f"Malformed sort clause: {chunk.strip()!r}")
            direction = Direction.parse(parts[1]) if len(parts) == 2 else Direction.ASC
            keys.append(SortKey(field=parts[0], direction=direction))
        return cls(keys=tuple(keys))

    def then(self, other: Sort) -> Sort:
        """Append other's keys as lower-priority tie-breakers."""
        return Sort(keys=self.keys + other.keys)

    def reversed(self) -> Sort:
        return Sort(
            keys=tuple(SortKey(field=k.field, direction=k.direction.reversed()) for k in self.keys)
        )

    def __bool__(self) -> bool:
        return bool(self.keys)


class KeyField(BaseModel):
    """A primary-key column: attribute name plus its Python type when known."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    python_type: type | None = None


class KeySchema(BaseModel):
    """Ordered primary-key description of an entity type."""

    model_config = ConfigDict(frozen=True)

    columns: tuple[KeyField, ...] = Field(min_length=1)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.columns)

    @property
    def is_single_integer(self) -> bool:
        return len(self.columns) == 1 and self.columns[0].python_type is int

    def check_arity(self, values: Sequence[Any]) -> tuple[Any, ...]:
        """Return values as a tuple, rejecting a count that does not match the key."""
        if len(values) != len(self.columns):
            raise InvalidArgumentError(
                f"Expected {len(self.columns)} key value(s) for {self.names}, got {len(values)}"
            )
        return tuple(values)

    def values_of(self, row: Any) -> tuple[Any, ...]:
        return tuple(read_field(row, name) for name in self.names)

    def matches(self, row: Any, values: Sequence[Any]) -> bool:
        """AND of per-column equality between row's key and values."""
        expected = self.check_arity(values)
        return all(read_field(row, name) == value for name, value in zip(self.names, expected))

    def as_sort(self, direction: Direction = Direction.ASC) -> Sort:
        return Sort.by(*self.names, direction=direction)
