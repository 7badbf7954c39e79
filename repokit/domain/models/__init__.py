"""Domain models: pure value objects with no ORM or session concerns."""

from .enums import Direction
from .paging import Page
from .query import KeyField, KeySchema, Sort, SortKey, field_name, read_field

__all__ = [
    "Direction",
    "Page",
    "KeyField",
    "KeySchema",
    "Sort",
    "SortKey",
    "field_name",
    "read_field",
]
