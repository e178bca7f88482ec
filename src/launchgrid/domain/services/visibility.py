"""Hidden-application filtering."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from ..models import AppItem, AppRecord, EmptySlot, Folder, FolderItem, GridItem, PlaceholderItem, new_empty
from .folders import prune_folders


def filter_hidden(
    items: Sequence[GridItem],
    folders: Dict[str, Folder],
    apps: Sequence[AppRecord],
    hidden: Iterable[str],
) -> tuple[List[GridItem], List[AppRecord]]:
    """Strip hidden paths from the grid, the folders and the catalog.

    Hidden top-level entries become empty slots so no other item moves.
    """

    hidden_set = set(hidden)
    if not hidden_set:
        return list(items), list(apps)

    result: List[GridItem] = []
    for item in items:
        if isinstance(item, AppItem) and item.app.path in hidden_set:
            result.append(new_empty())
        elif isinstance(item, PlaceholderItem) and item.placeholder.path in hidden_set:
            result.append(new_empty())
        elif isinstance(item, (AppItem, PlaceholderItem, FolderItem, EmptySlot)):
            result.append(item)
        else:
            result.append(new_empty())
    result = prune_folders(result, folders, hidden_set)
    visible_apps = [app for app in apps if app.path not in hidden_set]
    return result, visible_apps


__all__ = ["filter_hidden"]
