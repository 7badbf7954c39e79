"""Domain services: paging, ordering and sibling navigation."""

from .navigation import neighbour, shifted_key
from .ordering import build_comparator, sort_sequence
from .paging import PageSource, SequenceSource, to_paged_list, validate_page_request

__all__ = [
    "PageSource",
    "SequenceSource",
    "build_comparator",
    "neighbour",
    "shifted_key",
    "sort_sequence",
    "to_paged_list",
    "validate_page_request",
]
