"""In-memory compilation of a Sort into a tie-breaking comparator.

The SQL layer turns a Sort into ORDER BY clauses instead; this module is used
for already-materialised sequences.  None sorts before any value in ascending
order, matching how SQLite and PostgreSQL (with NULLS FIRST) order NULLs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import cmp_to_key
from typing import Any, TypeVar

from ..models.query import Sort, read_field

T = TypeVar("T")


def _compare_values(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -1
    if right is None:
        return 1
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def build_comparator(sort: Sort) -> Callable[[Any, Any], int]:
    """Fold the sort keys into one cmp(a, b) function.

    The first key decides; each following key only breaks ties left by the
    keys before it.
    """
    steps = [(key.name, -1 if key.descending else 1) for key in sort.keys]

    def compare(left: Any, right: Any) -> int:
        for name, sign in steps:
            outcome = _compare_values(read_field(left, name), read_field(right, name))
            if outcome:
                return sign * outcome
        return 0

    return compare


def sort_sequence(rows: Iterable[T], sort: Sort | None) -> list[T]:
    """Return rows ordered by sort; input order is kept when sort is empty (stable)."""
    materialized = list(rows)
    if not sort:
        return materialized
    return sorted(materialized, key=cmp_to_key(build_comparator(sort)))
