"""Rebuild the flat item list against a refreshed application catalog."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence

from ..models import (
    AppItem,
    AppRecord,
    EmptySlot,
    Folder,
    FolderItem,
    GridItem,
    Placeholder,
    PlaceholderItem,
    folder_member_paths,
    new_empty,
)


class PlaceholderSource(Protocol):
    """The subset of the missing-item tracker used while rebuilding."""

    def track_missing(
        self,
        path: str,
        display_name: Optional[str] = None,
        removable_source: Optional[str] = None,
    ) -> Optional[Placeholder]:
        ...

    def current(self, path: str) -> Optional[Placeholder]:
        ...

    def forget(self, path: str) -> None:
        ...

    def removable_source_for(self, path: str) -> Optional[str]:
        ...


def place_new_items(
    items: Sequence[GridItem],
    new_items: Sequence[GridItem],
    capacity: int,
) -> List[GridItem]:
    """Add *new_items* behind the existing layout.

    Empty slots on the last page are used first, then the rest of that page,
    then whole new pages padded with empty slots.
    """

    result = list(items)
    queue = list(new_items)
    if not queue:
        return result
    if result:
        last_start = ((len(result) - 1) // capacity) * capacity
        for index in range(last_start, len(result)):
            if not queue:
                break
            if isinstance(result[index], EmptySlot):
                result[index] = queue.pop(0)
        while queue and len(result) % capacity:
            result.append(queue.pop(0))
    while queue:
        chunk, queue = queue[:capacity], queue[capacity:]
        result.extend(chunk)
        result.extend(new_empty() for _ in range(capacity - len(chunk)))
    return result


def rebuild_items(
    items: Sequence[GridItem],
    apps: Sequence[AppRecord],
    folders: Dict[str, Folder],
    tracker: PlaceholderSource,
    capacity: int,
) -> List[GridItem]:
    """Refresh every slot in place and append genuinely new entries.

    * known applications keep their slot and pick up the fresh record
    * applications missing from *apps* become placeholders, or empty slots
      when the tracker refuses them
    * folder members are refreshed and vanished members dropped unless they
      live on a removable source; folders unknown to the registry or left
      without members become empty slots
    * applications and folders not yet on the grid are appended
    """

    fresh = {app.path: app for app in apps}
    for folder in list(folders.values()):
        # Members on a removable source survive until the source is purged.
        folder.apps = [
            fresh.get(app.path, app)
            for app in folder.apps
            if app.path in fresh or tracker.removable_source_for(app.path) is not None
        ]
        if not folder.apps:
            del folders[folder.id]
    members = folder_member_paths(folders)

    seen_paths: set[str] = set()
    seen_folders: set[str] = set()
    result: List[GridItem] = []
    for item in items:
        if isinstance(item, AppItem):
            path = item.app.path
            if path in members or path in seen_paths:
                result.append(new_empty())
                continue
            seen_paths.add(path)
            record = fresh.get(path)
            if record is not None:
                result.append(AppItem(record))
                continue
            placeholder = tracker.track_missing(path, item.app.name)
            result.append(PlaceholderItem(placeholder) if placeholder else new_empty())
        elif isinstance(item, FolderItem):
            folder = folders.get(item.folder.id)
            if folder is None or not folder.apps or folder.id in seen_folders:
                result.append(new_empty())
                continue
            seen_folders.add(folder.id)
            result.append(FolderItem(folder))
        elif isinstance(item, PlaceholderItem):
            path = item.placeholder.path
            if path in members or path in seen_paths:
                result.append(new_empty())
                continue
            seen_paths.add(path)
            record = fresh.get(path)
            if record is not None:
                tracker.forget(path)
                result.append(AppItem(record))
                continue
            current = tracker.current(path)
            result.append(PlaceholderItem(current) if current else new_empty())
        elif isinstance(item, EmptySlot):
            result.append(item)
        else:
            result.append(new_empty())

    additions: List[GridItem] = [
        FolderItem(folder)
        for folder in folders.values()
        if folder.id not in seen_folders and folder.apps
    ]
    additions.extend(
        AppItem(app)
        for app in apps
        if app.path not in members and app.path not in seen_paths
    )
    return place_new_items(result, additions, capacity)


__all__ = ["PlaceholderSource", "place_new_items", "rebuild_items"]
