"""Cross-page cascading insert used for drag and drop.

Inserting into a full page pushes that page's last slot onto the front of
the next page, and so on, until an empty slot falls off the end. The result
is not compacted so an item dropped mid-page stays where it was dropped.
"""

from __future__ import annotations

from typing import List, Sequence

from ...errors import InvalidMoveError
from ..models import EmptySlot, GridItem, new_empty
from .paging import pad_to_full_pages


def cascade_insert(
    items: Sequence[GridItem],
    item: GridItem,
    target_index: int,
    capacity: int,
) -> List[GridItem]:
    """Insert *item* at *target_index*, spilling overflow onto later pages.

    *target_index* is clamped to ``[0, len(items)]``.
    """

    if capacity < 1:
        raise ValueError(f"page capacity must be positive, got {capacity}")
    target_index = max(0, min(target_index, len(items)))
    result = pad_to_full_pages(items, capacity)

    page = target_index // capacity
    local = target_index - page * capacity
    carry: GridItem = item
    while True:
        start = page * capacity
        if start >= len(result):
            result.extend(new_empty() for _ in range(capacity))
        window = result[start:start + capacity]
        window.insert(min(local, len(window)), carry)
        spilled = window.pop() if len(window) > capacity else None
        result[start:start + capacity] = window
        if spilled is None or isinstance(spilled, EmptySlot):
            break
        carry = spilled
        page += 1
        local = 0
    return result


def move_item(
    items: Sequence[GridItem],
    source_index: int,
    target_index: int,
    capacity: int,
) -> List[GridItem]:
    """Vacate *source_index* and cascade-insert its item at *target_index*."""

    if not 0 <= source_index < len(items):
        raise InvalidMoveError(f"source index {source_index} outside 0..{len(items) - 1}")
    working = list(items)
    moving = working[source_index]
    working[source_index] = new_empty()
    return cascade_insert(working, moving, target_index, capacity)


__all__ = ["cascade_insert", "move_item"]
