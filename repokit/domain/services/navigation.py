"""Sibling lookup over a sequence ordered by primary key."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from ..exceptions import InvalidArgumentError
from ..models.query import KeySchema

T = TypeVar("T")


def shifted_key(schema: KeySchema, key_values: Sequence[Any], step: int) -> tuple[Any, ...]:
    """key ± step for a single integer key.

    Only pays off for dense surrogate keys; across a gap the shifted key
    names no row and the caller has to fall back to an ordered scan.
    """
    if not schema.is_single_integer:
        raise InvalidArgumentError(f"Key {schema.names} is not a single integer column")
    (value,) = schema.check_arity(key_values)
    return (value + step,)


def neighbour(
    ordered_rows: Sequence[T],
    schema: KeySchema,
    key_values: Sequence[Any],
    offset: int,
) -> T | None:
    """Row `offset` positions away from the row whose key equals key_values.

    Returns None when the reference row is absent or the neighbour would
    fall outside the sequence.
    """
    for position, row in enumerate(ordered_rows):
        if schema.matches(row, key_values):
            target = position + offset
            if 0 <= target < len(ordered_rows):
                return ordered_rows[target]
            return None
    return None
