"""Scan scheduling and application of scan results."""

from __future__ import annotations

from typing import List, Optional

from ..domain.models import AppItem, AppRecord
from ..domain.services.merge import place_new_items, rebuild_items
from ..domain.services.visibility import filter_hidden
from ..errors import ScanError
from ..events.layout_events import ScanCompletedEvent
from ..io.scanner import ApplicationScanner, merge_order_preserving, search_paths, sort_by_name
from ..utils.logging import get_logger
from .workers.scanner_worker import ScannerSignals, ScannerWorker


LOGGER = get_logger()


class ScanCoordinatorMixin:
    """Mixin providing scan scheduling and result merging for LayoutManager."""

    def search_roots(self) -> List[str]:
        """Existing system and custom directories, normalised and de-duplicated."""

        return search_paths(self.custom_sources(), self._system_dirs)

    def is_scanning(self) -> bool:
        return bool(self._scan_workers)

    def scan_applications(self, preserve_order: bool = True, blocking: bool = False) -> None:
        """Enumerate applications and merge them into the layout.

        With *preserve_order* the current arrangement is kept and only new or
        vanished applications change it. Without it the layout is rebuilt in
        name order. *blocking* runs the walk on the calling thread.
        """

        scanner = ApplicationScanner(self._resolver, custom_titles=self.custom_titles())
        self._scan_sequence += 1
        signals = ScannerSignals()
        signals.finished.connect(self._on_scan_finished)
        signals.error.connect(self._on_scan_error)
        worker = ScannerWorker(scanner, self.search_roots(), preserve_order, signals, self._scan_sequence)
        self.scanStarted.emit(not preserve_order)
        if blocking:
            worker.run()
            return
        self._scan_workers[worker.sequence] = worker
        self._scan_thread_pool.start(worker)

    def initial_scan(self, blocking: bool = False) -> None:
        """Restore the saved layout, then refresh it from disk."""

        self.load_layout()
        self.scan_applications(preserve_order=True, blocking=blocking)

    def reset_layout(self, blocking: bool = False) -> None:
        """Forget the saved arrangement and rebuild from a full scan."""

        self._persistence.reset()
        self._folders.clear()
        self._tracker.clear()
        self._apps = []
        self._items = []
        self._set_current_page(0)
        self.scan_applications(preserve_order=False, blocking=blocking)

    def _on_scan_finished(self, records: list, preserve_order: bool, sequence: int) -> None:
        self._scan_workers.pop(sequence, None)
        if sequence < self._last_applied_scan:
            LOGGER.debug("Ignoring stale scan #%d (already applied #%d)", sequence, self._last_applied_scan)
            return
        self._last_applied_scan = sequence
        self.apply_scan_results(records, preserve_order)
        self.scanFinished.emit(True)

    def _on_scan_error(self, message: str) -> None:
        self._scan_workers = {seq: worker for seq, worker in self._scan_workers.items() if not worker.failed}
        self._report(ScanError(message), {"operation": "scan"})
        self.scanFinished.emit(False)

    def apply_scan_results(self, records: List[AppRecord], preserve_order: bool = True) -> None:
        """Merge freshly scanned *records* into the catalog and the grid."""

        hidden = set(self.hidden_paths())
        visible = [record for record in records if record.path not in hidden]
        capacity = self.page_capacity

        if not preserve_order:
            self._apps = sort_by_name(visible)
            self._folders.clear()
            self._tracker.clear()
            items = place_new_items([], [AppItem(app) for app in self._apps], capacity)
            self._persistence.mark_applied()
            self._commit(items, "full-scan", drop_empty_pages=True)
            self._events.publish(ScanCompletedEvent(
                full=True, app_count=len(self._apps), added=tuple(app.path for app in self._apps)
            ))
            return

        merge = merge_order_preserving(self._apps, visible)
        self._apps = merge.apps
        if not self._persistence.applied:
            self.load_layout()
        self._rebuild_and_commit("scan")
        LOGGER.info(
            "Scan merged %d applications (%d new, %d missing)",
            len(self._apps), len(merge.added), len(merge.missing),
        )
        self._events.publish(ScanCompletedEvent(
            full=False,
            app_count=len(self._apps),
            added=tuple(app.path for app in merge.added),
            missing=tuple(app.path for app in merge.missing),
        ))

    def _rebuild_and_commit(self, reason: str, drop_empty_pages: bool = False) -> None:
        capacity = self.page_capacity
        items = rebuild_items(self._items, self._apps, self._folders, self._tracker, capacity)
        items, self._apps = filter_hidden(items, self._folders, self._apps, self.hidden_paths())
        reconciled = self._tracker.reconcile(items, self._apps, self._resolver, self.custom_titles())
        self._apps = reconciled.apps
        self._commit(reconciled.items, reason, drop_empty_pages=drop_empty_pages)

    def _record_for_path(self, path: str) -> Optional[AppRecord]:
        for app in self._apps:
            if app.path == path:
                return app
        for folder in self._folders.values():
            for app in folder.apps:
                if app.path == path:
                    return app
        return None
