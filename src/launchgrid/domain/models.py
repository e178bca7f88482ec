"""Value types for the launcher grid.

The layout is a flat list of grid items. Each item is exactly one of
:class:`AppItem`, :class:`FolderItem`, :class:`PlaceholderItem` or
:class:`EmptySlot`; consumers dispatch over all four.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..config import DEFAULT_FOLDER_NAME


@dataclass(frozen=True)
class AppRecord:
    """An installed application, identified by its canonical bundle path."""

    path: str
    name: str = field(compare=False)
    icon: Optional[str] = field(default=None, compare=False)
    """Path to the bundle's icon file, if one was found."""

    source_dir: Optional[str] = field(default=None, compare=False)
    """Search directory the bundle was discovered under."""


@dataclass(eq=False)
class Folder:
    """A user-created group of applications. Identity is the ``id``."""

    name: str = DEFAULT_FOLDER_NAME
    apps: list[AppRecord] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Folder):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def member_paths(self) -> list[str]:
        return [app.path for app in self.apps]

    def contains(self, path: str) -> bool:
        return any(app.path == path for app in self.apps)


@dataclass(frozen=True)
class Placeholder:
    """Stand-in for an application whose bundle vanished from a custom source."""

    path: str
    display_name: str = field(compare=False)
    removable_source: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class AppItem:
    app: AppRecord


@dataclass(frozen=True)
class FolderItem:
    folder: Folder


@dataclass(frozen=True)
class PlaceholderItem:
    placeholder: Placeholder


@dataclass(frozen=True)
class EmptySlot:
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


GridItem = Union[AppItem, FolderItem, PlaceholderItem, EmptySlot]

KIND_APP = "app"
KIND_FOLDER = "folder"
KIND_MISSING = "missing"
KIND_EMPTY = "empty"


def new_empty() -> EmptySlot:
    return EmptySlot()


def is_empty(item: GridItem) -> bool:
    return isinstance(item, EmptySlot)


def item_kind(item: GridItem) -> str:
    if isinstance(item, AppItem):
        return KIND_APP
    if isinstance(item, FolderItem):
        return KIND_FOLDER
    if isinstance(item, PlaceholderItem):
        return KIND_MISSING
    if isinstance(item, EmptySlot):
        return KIND_EMPTY
    raise TypeError(f"Unknown grid item: {item!r}")


def item_name(item: GridItem) -> str:
    if isinstance(item, AppItem):
        return item.app.name
    if isinstance(item, FolderItem):
        return item.folder.name
    if isinstance(item, PlaceholderItem):
        return item.placeholder.display_name
    if isinstance(item, EmptySlot):
        return ""
    raise TypeError(f"Unknown grid item: {item!r}")


def item_path(item: GridItem) -> Optional[str]:
    """Bundle path for application and placeholder items, else ``None``."""

    if isinstance(item, AppItem):
        return item.app.path
    if isinstance(item, PlaceholderItem):
        return item.placeholder.path
    if isinstance(item, (FolderItem, EmptySlot)):
        return None
    raise TypeError(f"Unknown grid item: {item!r}")


def top_level_paths(items: list[GridItem]) -> set[str]:
    paths: set[str] = set()
    for item in items:
        path = item_path(item)
        if path is not None:
            paths.add(path)
    return paths


def folder_member_paths(folders: dict[str, Folder]) -> set[str]:
    return {app.path for folder in folders.values() for app in folder.apps}


def free_apps(apps: list[AppRecord], folders: dict[str, Folder]) -> list[AppRecord]:
    """Applications from *apps* that are not members of any folder."""

    members = folder_member_paths(folders)
    return [app for app in apps if app.path not in members]


__all__ = [
    "AppItem",
    "AppRecord",
    "EmptySlot",
    "Folder",
    "FolderItem",
    "GridItem",
    "KIND_APP",
    "KIND_EMPTY",
    "KIND_FOLDER",
    "KIND_MISSING",
    "Placeholder",
    "PlaceholderItem",
    "folder_member_paths",
    "free_apps",
    "is_empty",
    "item_kind",
    "item_name",
    "item_path",
    "new_empty",
    "top_level_paths",
]
