"""Page/slot addressing and per-page compaction.

A flat sequence is split into windows of ``capacity`` items; window ``n`` is
page ``n``. Nothing here mutates its input.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..models import GridItem, is_empty, new_empty


def _check_capacity(capacity: int) -> None:
    if capacity < 1:
        raise ValueError(f"page capacity must be positive, got {capacity}")


def page_count(length: int, capacity: int) -> int:
    _check_capacity(capacity)
    return (length + capacity - 1) // capacity


def address_of(index: int, capacity: int) -> Tuple[int, int]:
    """Return ``(page, slot)`` for a flat *index*."""

    _check_capacity(capacity)
    return divmod(index, capacity)


def flat_index(page: int, slot: int, capacity: int) -> int:
    _check_capacity(capacity)
    return page * capacity + slot


def page_slice(items: Sequence[GridItem], page: int, capacity: int) -> List[GridItem]:
    _check_capacity(capacity)
    start = page * capacity
    return list(items[start:start + capacity])


def clamp_page(page: int, length: int, capacity: int) -> int:
    pages = page_count(length, capacity)
    if pages == 0:
        return 0
    return max(0, min(page, pages - 1))


def compact(items: Sequence[GridItem], capacity: int) -> List[GridItem]:
    """Move every empty slot behind the non-empty items of its own page."""

    _check_capacity(capacity)
    result: List[GridItem] = []
    for start in range(0, len(items), capacity):
        window = items[start:start + capacity]
        filled = [item for item in window if not is_empty(item)]
        empties = [item for item in window if is_empty(item)]
        result.extend(filled)
        result.extend(empties)
    return result


def remove_empty_pages(items: Sequence[GridItem], capacity: int) -> List[GridItem]:
    """Drop every page window made up entirely of empty slots."""

    _check_capacity(capacity)
    result: List[GridItem] = []
    for start in range(0, len(items), capacity):
        window = items[start:start + capacity]
        if all(is_empty(item) for item in window):
            continue
        result.extend(window)
    return result


def pad_to_full_pages(items: Sequence[GridItem], capacity: int) -> List[GridItem]:
    _check_capacity(capacity)
    result = list(items)
    remainder = len(result) % capacity
    if remainder:
        result.extend(new_empty() for _ in range(capacity - remainder))
    return result


def empty_page(capacity: int) -> List[GridItem]:
    _check_capacity(capacity)
    return [new_empty() for _ in range(capacity)]


def is_page_empty(items: Sequence[GridItem], page: int, capacity: int) -> bool:
    window = page_slice(items, page, capacity)
    return all(is_empty(item) for item in window)


__all__ = [
    "address_of",
    "clamp_page",
    "compact",
    "empty_page",
    "flat_index",
    "is_page_empty",
    "pad_to_full_pages",
    "page_count",
    "page_slice",
    "remove_empty_pages",
]
