"""Enumerations shared by the query description models."""

from __future__ import annotations

from enum import Enum

from ..exceptions import InvalidArgumentError


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str) -> Direction:
        """Accept 'asc'/'desc' in any case; also the long forms used in ORDER BY text."""
        normalized = value.strip().lower()
        if normalized in ("asc", "ascending"):
            return cls.ASC
        if normalized in ("desc", "descending"):
            return cls.DESC
        raise InvalidArgumentError(f"Unknown sort direction: {value!r}")

    def reversed(self) -> Direction:
        return Direction.DESC if self is Direction.ASC else Direction.ASC
