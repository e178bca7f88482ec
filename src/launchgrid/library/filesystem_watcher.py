"""Live change handling: directory watches, debounce and volume events."""

from __future__ import annotations

from typing import List, Sequence

from ..config import MOUNT_RESCAN_DELAY_MS, UNMOUNT_RESCAN_DELAY_MS
from ..domain.models import AppItem, AppRecord, PlaceholderItem
from ..errors import ScanError
from ..io.scanner import sort_by_name
from ..utils.logging import get_logger
from ..utils.pathutils import is_under, standardize
from .changes import ChangeKind, FileChangeEvent, PendingChange
from .workers.incremental_worker import IncrementalSignals, IncrementalWorker


LOGGER = get_logger()


class FileSystemWatcherMixin:
    """Mixin providing file-system watch management for LayoutManager."""

    def start_watching(self) -> None:
        """Watch the current search roots and mounted volumes."""

        self._directory_watcher.set_roots(self.search_roots())
        if not self._volume_monitor.is_active():
            self._volume_monitor.start()

    def stop_watching(self) -> None:
        self._debounce.stop()
        self._accumulator.drain()
        self._directory_watcher.stop()
        self._volume_monitor.stop()

    def is_watching(self) -> bool:
        return self._directory_watcher.is_active()

    def restart_watching(self) -> None:
        """Re-read the search roots if watching is active."""

        if self.is_watching():
            self._directory_watcher.set_roots(self.search_roots())

    def handle_file_events(self, events: Sequence[FileChangeEvent]) -> None:
        """Fold raw events into the pending batch and (re)arm the debounce."""

        roots = self._directory_watcher.roots() or self.search_roots()
        self._accumulator.record(events, roots)
        if self._accumulator.pending:
            # ``start`` restarts a running timer, coalescing bursts.
            self._debounce.start()

    def process_pending_changes(self, blocking: bool = False) -> None:
        """Handle the batch collected since the last debounce tick."""

        self._debounce.stop()
        batch = self._accumulator.drain()
        if batch.full_scan:
            LOGGER.info("Change burst too large or structural; running a full scan")
            self.scan_applications(preserve_order=True, blocking=blocking)
            return
        if not batch.paths:
            return

        known = {app.path for app in self._apps}
        known.update(app.path for folder in self._folders.values() for app in folder.apps)
        signals = IncrementalSignals()
        signals.changesReady.connect(self._on_incremental_ready)
        signals.error.connect(self._on_incremental_error)
        worker = IncrementalWorker(
            batch.paths, known, self._resolver, self.search_roots(), signals, self.custom_titles()
        )
        if blocking:
            worker.run()
            return
        self._incremental_workers.append(worker)
        self._scan_thread_pool.start(worker)

    def _on_incremental_ready(self, changes: List[PendingChange]) -> None:
        sender = self.sender()
        self._incremental_workers = [
            worker for worker in self._incremental_workers if worker.signals is not sender
        ]
        self.apply_incremental_changes(changes)

    def _on_incremental_error(self, message: str) -> None:
        sender = self.sender()
        self._incremental_workers = [
            worker for worker in self._incremental_workers if worker.signals is not sender
        ]
        self._report(ScanError(message), {"operation": "incremental"})

    def apply_incremental_changes(self, changes: List[PendingChange]) -> None:
        """Apply classified changes from the incremental worker."""

        hidden = set(self.hidden_paths())
        refreshed = {
            change.path: change.record
            for change in changes
            if change.kind in (ChangeKind.INSERT, ChangeKind.UPDATE)
            and change.record is not None
            and change.path not in hidden
        }
        removed = {change.path for change in changes if change.kind is ChangeKind.REMOVE}
        if not refreshed and not removed:
            return

        # Removed apps leave the catalog; their slots turn into placeholders or
        # empty slots when the grid is rebuilt.
        known = {app.path for app in self._apps}
        catalog: List[AppRecord] = [
            refreshed.get(app.path, app) for app in self._apps if app.path not in removed
        ]
        for folder in self._folders.values():
            folder.apps = [refreshed.get(app.path, app) for app in folder.apps]
        additions = [record for path, record in refreshed.items() if path not in known]
        self._apps = catalog + sort_by_name(additions)

        fresh = {app.path: app for app in self._apps}
        items = []
        for item in self._items:
            if isinstance(item, AppItem) and item.app.path in fresh:
                items.append(AppItem(fresh[item.app.path]))
            elif isinstance(item, PlaceholderItem) and item.placeholder.path in fresh:
                self._tracker.forget(item.placeholder.path)
                items.append(AppItem(fresh[item.placeholder.path]))
            else:
                items.append(item)
        self._items = items
        LOGGER.debug("Applied %d incremental changes", len(changes))
        self._rebuild_and_commit("incremental")

    def handle_volume_event(self, volume_path: str, mounted: bool) -> bool:
        """Schedule a delayed rescan when a custom source lives on *volume_path*."""

        volume = standardize(volume_path)
        relevant = any(is_under(standardize(source), volume) for source in self.custom_sources())
        if not relevant:
            return False
        delay = MOUNT_RESCAN_DELAY_MS if mounted else UNMOUNT_RESCAN_DELAY_MS
        LOGGER.info("Volume %s %s; rescanning in %d ms", volume, "mounted" if mounted else "unmounted", delay)
        self._volume_rescan_call.schedule(delay)
        return True

    def _on_volume_mounted(self, path: str) -> None:
        self.handle_volume_event(path, True)

    def _on_volume_unmounted(self, path: str) -> None:
        self.handle_volume_event(path, False)

    def _restart_after_volume_change(self) -> None:
        self.restart_watching()
        self.scan_applications(preserve_order=True)
