"""Offset pagination over an in-memory result set."""

from typing import List, NamedTuple, Sequence, TypeVar

T = TypeVar("T")


class Page(NamedTuple):
    """One slice of a result set."""

    items: List
    total_count: int
    has_more: bool


def paginate(items: Sequence[T], limit: int, offset: int) -> Page:
    """Slice ``items[offset:offset + limit]``.

    ``total_count`` is the size of the full set and ``has_more`` tells whether
    anything lies beyond the returned slice.

    Raises:
        ValueError: If limit or offset is negative.
    """
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must not be negative")
    total_count = len(items)
    return Page(
        items=list(items[offset : offset + limit]),
        total_count=total_count,
        has_more=offset + limit < total_count,
    )
