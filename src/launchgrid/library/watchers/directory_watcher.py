"""Turn ``QFileSystemWatcher`` directory notifications into flagged events."""

from __future__ import annotations

import os
from typing import Dict, List, Sequence

from PySide6.QtCore import QFileSystemWatcher, QObject, Signal

from ...utils.logging import get_logger
from ...utils.pathutils import is_bundle_name, is_package_name, standardize
from ..changes import ChangeFlags, FileChangeEvent

LOGGER = get_logger()

# name -> is_dir
_Listing = Dict[str, bool]


def _list_dir(path: str) -> _Listing:
    listing: _Listing = {}
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                try:
                    listing[entry.name] = entry.is_dir(follow_symlinks=True)
                except OSError:
                    listing[entry.name] = False
    except OSError as exc:
        LOGGER.debug("Cannot list %s: %s", path, exc)
    return listing


class DirectoryWatcher(QObject):
    """Watch search roots and report created, removed and modified entries.

    ``QFileSystemWatcher`` only says *that* a directory changed, so each
    watched directory keeps a snapshot of its listing and changes are
    derived by diffing against it. Plain subdirectories are watched
    recursively; bundles are watched at their top level only.
    """

    eventsReady = Signal(list)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._watcher = QFileSystemWatcher(self)
        self._watcher.directoryChanged.connect(self._on_directory_changed)
        self._roots: List[str] = []
        self._snapshots: Dict[str, _Listing] = {}

    def roots(self) -> List[str]:
        return list(self._roots)

    def is_active(self) -> bool:
        return bool(self._roots)

    def watched_directories(self) -> List[str]:
        return sorted(self._snapshots)

    def set_roots(self, roots: Sequence[str]) -> None:
        self.stop()
        self._roots = [standardize(root) for root in roots if os.path.isdir(root)]
        for root in self._roots:
            self._watch_tree(root)
        LOGGER.debug("Watching %d directories under %d roots", len(self._snapshots), len(self._roots))

    def stop(self) -> None:
        existing = self._watcher.directories()
        if existing:
            self._watcher.removePaths(existing)
        self._snapshots.clear()
        self._roots = []

    def _watch_tree(self, path: str) -> None:
        pending = [path]
        added: List[str] = []
        while pending:
            current = pending.pop()
            if current in self._snapshots:
                continue
            listing = _list_dir(current)
            self._snapshots[current] = listing
            added.append(current)
            if is_bundle_name(os.path.basename(current)):
                continue
            for name, is_dir in listing.items():
                if not is_dir:
                    continue
                child = os.path.join(current, name)
                if is_bundle_name(name) or not is_package_name(name):
                    pending.append(child)
        if added:
            self._watcher.addPaths(added)

    def _forget_tree(self, path: str) -> None:
        prefix = path + os.sep
        doomed = [entry for entry in self._snapshots if entry == path or entry.startswith(prefix)]
        for entry in doomed:
            del self._snapshots[entry]
        if doomed:
            self._watcher.removePaths([entry for entry in doomed if entry in self._watcher.directories()])

    def _on_directory_changed(self, path: str) -> None:
        events = self.diff(path)
        if events:
            self.eventsReady.emit(events)

    def diff(self, path: str) -> List[FileChangeEvent]:
        """Compare *path* with its snapshot and return the derived events."""

        previous = self._snapshots.get(path)
        if previous is None:
            return []
        if not os.path.isdir(path):
            self._forget_tree(path)
            return [FileChangeEvent(path, ChangeFlags.REMOVED | ChangeFlags.IS_DIR)]

        current = _list_dir(path)
        self._snapshots[path] = current
        events: List[FileChangeEvent] = []
        for name in sorted(current.keys() - previous.keys()):
            child = os.path.join(path, name)
            flags = ChangeFlags.CREATED
            if current[name]:
                flags |= ChangeFlags.IS_DIR
                inside_bundle = is_bundle_name(os.path.basename(path))
                if not inside_bundle and (is_bundle_name(name) or not is_package_name(name)):
                    self._watch_tree(child)
            events.append(FileChangeEvent(child, flags))
        for name in sorted(previous.keys() - current.keys()):
            child = os.path.join(path, name)
            flags = ChangeFlags.REMOVED
            if previous[name]:
                flags |= ChangeFlags.IS_DIR
                self._forget_tree(child)
            events.append(FileChangeEvent(child, flags))
        if not events:
            events.append(FileChangeEvent(path, ChangeFlags.MODIFIED | ChangeFlags.IS_DIR))
        return events


__all__ = ["DirectoryWatcher"]
