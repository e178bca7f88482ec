"""Folder membership operations over the flat item list and folder registry.

Each function returns a new item list; the registry dict and folder objects
are updated in place since the coordinator owns them exclusively.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ...config import DEFAULT_FOLDER_NAME
from ...errors import FolderNotFoundError, ItemNotFoundError
from ..models import AppItem, AppRecord, EmptySlot, Folder, FolderItem, GridItem, new_empty
from .paging import compact, remove_empty_pages


def index_of_app(items: Sequence[GridItem], path: str) -> Optional[int]:
    for index, item in enumerate(items):
        if isinstance(item, AppItem) and item.app.path == path:
            return index
    return None


def index_of_folder(items: Sequence[GridItem], folder_id: str) -> Optional[int]:
    for index, item in enumerate(items):
        if isinstance(item, FolderItem) and item.folder.id == folder_id:
            return index
    return None


def first_empty_index(items: Sequence[GridItem]) -> Optional[int]:
    for index, item in enumerate(items):
        if isinstance(item, EmptySlot):
            return index
    return None


def _require_folder(folders: Dict[str, Folder], folder_id: str) -> Folder:
    folder = folders.get(folder_id)
    if folder is None:
        raise FolderNotFoundError(f"Unknown folder id: {folder_id}")
    return folder


def create_folder(
    items: Sequence[GridItem],
    folders: Dict[str, Folder],
    apps: Sequence[AppRecord],
    capacity: int,
    name: str = DEFAULT_FOLDER_NAME,
    insert_at: Optional[int] = None,
) -> tuple[List[GridItem], Folder]:
    """Group *apps* into a new folder placed at the lowest member slot.

    When none of the members is a top-level item the folder goes to
    *insert_at*, or is appended.
    """

    if not apps:
        raise ValueError("a folder needs at least one application")
    folder = Folder(name=name.strip() or DEFAULT_FOLDER_NAME, apps=list(dict.fromkeys(apps)))
    result = list(items)
    member_indices = [
        index for index in (index_of_app(result, app.path) for app in folder.apps)
        if index is not None
    ]
    for index in member_indices:
        result[index] = new_empty()

    # Apps moving out of other folders must not stay members there.
    new_paths = set(folder.member_paths())
    for other in list(folders.values()):
        other.apps = [app for app in other.apps if app.path not in new_paths]
        if not other.apps:
            del folders[other.id]
            slot = index_of_folder(result, other.id)
            if slot is not None:
                result[slot] = new_empty()

    folder_item = FolderItem(folder)
    if member_indices:
        result[min(member_indices)] = folder_item
    elif insert_at is not None and 0 <= insert_at <= len(result):
        if insert_at < len(result) and isinstance(result[insert_at], EmptySlot):
            result[insert_at] = folder_item
        else:
            result.insert(insert_at, folder_item)
    else:
        result.append(folder_item)
    folders[folder.id] = folder
    return compact(result, capacity), folder


def add_app_to_folder(
    items: Sequence[GridItem],
    folders: Dict[str, Folder],
    folder_id: str,
    app: AppRecord,
    capacity: int,
) -> List[GridItem]:
    folder = _require_folder(folders, folder_id)
    if folder.contains(app.path):
        return list(items)
    result = list(items)
    index = index_of_app(result, app.path)
    if index is not None:
        result[index] = new_empty()
    for other in folders.values():
        if other.id != folder.id:
            other.apps = [member for member in other.apps if member.path != app.path]
    folder.apps.append(app)
    return compact(result, capacity)


def remove_app_from_folder(
    items: Sequence[GridItem],
    folders: Dict[str, Folder],
    folder_id: str,
    path: str,
    capacity: int,
) -> List[GridItem]:
    """Take *path* out of a folder and put it back on the grid.

    An emptied folder is deleted and the application takes over its slot;
    otherwise the application fills the first empty slot or is appended.
    """

    folder = _require_folder(folders, folder_id)
    member = next((app for app in folder.apps if app.path == path), None)
    if member is None:
        raise ItemNotFoundError(f"{path} is not a member of folder {folder.name!r}")
    folder.apps = [app for app in folder.apps if app.path != path]
    result = list(items)

    target: Optional[int] = None
    if not folder.apps:
        del folders[folder.id]
        target = index_of_folder(result, folder.id)
        if target is not None:
            result[target] = new_empty()
    if target is None:
        target = first_empty_index(result)

    if target is None:
        result.append(AppItem(member))
    else:
        result[target] = AppItem(member)
    return remove_empty_pages(compact(result, capacity), capacity)


def rename_folder(folders: Dict[str, Folder], folder_id: str, name: str) -> Folder:
    folder = _require_folder(folders, folder_id)
    cleaned = name.strip()
    if cleaned:
        folder.name = cleaned
    return folder


def prune_folders(
    items: Sequence[GridItem],
    folders: Dict[str, Folder],
    drop_paths: set[str],
) -> List[GridItem]:
    """Remove *drop_paths* from every folder; empty folders become empty slots."""

    result = list(items)
    for folder in list(folders.values()):
        kept = [app for app in folder.apps if app.path not in drop_paths]
        if len(kept) == len(folder.apps):
            continue
        folder.apps = kept
        if kept:
            continue
        del folders[folder.id]
        index = index_of_folder(result, folder.id)
        if index is not None:
            result[index] = new_empty()
    return result


__all__ = [
    "add_app_to_folder",
    "create_folder",
    "first_empty_index",
    "index_of_app",
    "index_of_folder",
    "prune_folders",
    "remove_app_from_folder",
    "rename_folder",
]
