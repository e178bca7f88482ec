"""Layout coordinator: owns the grid, the folders and the placeholder map."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Optional, Sequence

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal

from ..config import (
    CHANGE_DEBOUNCE_MS,
    DRAG_PAGE_CLEANUP_DELAY_MS,
    MAX_COLUMNS,
    MAX_ROWS,
    MIN_COLUMNS,
    MIN_ROWS,
    SAVE_DEBOUNCE_MS,
    SYSTEM_APPLICATION_DIRS,
)
from ..domain.models import AppRecord, Folder, GridItem, Placeholder
from ..domain.repositories import ILayoutRepository
from ..domain.services.cascade import move_item as cascade_move
from ..domain.services.paging import (
    clamp_page,
    compact,
    empty_page,
    is_page_empty,
    pad_to_full_pages,
    page_count,
    remove_empty_pages,
)
from ..errors import DatabaseError, SourceError
from ..errors.handler import ErrorHandler, ErrorSeverity
from ..events.bus import EventBus
from ..events.layout_events import LayoutChangedEvent, PlaceholdersChangedEvent, SettingChangedEvent
from ..io.metadata import BundleMetadataResolver, MetadataResolver
from ..settings.manager import SettingsManager
from ..settings.schema import clamp
from ..utils.cancellation import ScheduledCall
from ..utils.logging import get_logger
from ..utils.pathutils import standardize
from .changes import ChangeAccumulator
from .filesystem_watcher import FileSystemWatcherMixin
from .folder_operations import FolderOperationsMixin
from .persistence import SOURCE_LEGACY, LayoutPersistence
from .placeholders import MissingItemTracker
from .scan_coordinator import ScanCoordinatorMixin
from .transfer import ImportResult, export_layout, plan_import, validate_import
from .visibility import VisibilityMixin
from .watchers.directory_watcher import DirectoryWatcher
from .watchers.volume_monitor import VolumeMonitor

LOGGER = get_logger()


class LayoutManager(
    ScanCoordinatorMixin,
    FileSystemWatcherMixin,
    FolderOperationsMixin,
    VisibilityMixin,
    QObject,
):
    """Single owner of the flat item list, folder registry and placeholders.

    Every structural change goes through :meth:`_commit`, which compacts the
    pages, notifies listeners and schedules a save. Background scans and
    change classification report back through queued signals so all
    mutation happens on the thread this object lives in.
    """

    itemsChanged = Signal()
    currentPageChanged = Signal(int)
    scanStarted = Signal(bool)
    scanFinished = Signal(bool)
    errorRaised = Signal(str)

    def __init__(
        self,
        settings: SettingsManager,
        repository: ILayoutRepository,
        resolver: MetadataResolver | None = None,
        event_bus: EventBus | None = None,
        error_handler: ErrorHandler | None = None,
        system_dirs: Sequence[str] = SYSTEM_APPLICATION_DIRS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._resolver = resolver or BundleMetadataResolver()
        self._events = event_bus or EventBus(LOGGER)
        self._errors = error_handler or ErrorHandler(LOGGER, self._events)
        self._system_dirs = tuple(system_dirs)

        self._apps: List[AppRecord] = []
        self._folders: Dict[str, Folder] = {}
        self._items: List[GridItem] = []
        self._current_page = 0
        self._pending_drag_page: Optional[int] = None
        self._last_placeholders: tuple[str, ...] = ()

        self._tracker = MissingItemTracker(self.custom_sources)
        self._persistence = LayoutPersistence(repository, self._resolver, self._tracker)

        self._save_call = ScheduledCall(self.save_now, self)
        self._drag_cleanup_call = ScheduledCall(self.cleanup_unused_drag_page, self)
        self._volume_rescan_call = ScheduledCall(self._restart_after_volume_change, self)

        # Change pipeline
        self._accumulator = ChangeAccumulator()
        self._debounce = QTimer(self)
        self._debounce.setSingleShot(True)
        self._debounce.setInterval(CHANGE_DEBOUNCE_MS)
        self._debounce.timeout.connect(self.process_pending_changes)
        self._directory_watcher = DirectoryWatcher(self)
        self._directory_watcher.eventsReady.connect(self.handle_file_events)
        self._volume_monitor = VolumeMonitor(self)
        self._volume_monitor.volumeMounted.connect(self._on_volume_mounted)
        self._volume_monitor.volumeUnmounted.connect(self._on_volume_unmounted)

        # Scanner state
        self._scan_thread_pool = QThreadPool.globalInstance()
        self._scan_workers: Dict[int, Any] = {}
        self._incremental_workers: List[Any] = []
        self._scan_sequence = 0
        self._last_applied_scan = 0

        self._settings.settingsChanged.connect(self._on_setting_changed)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def items(self) -> List[GridItem]:
        return list(self._items)

    @property
    def apps(self) -> List[AppRecord]:
        return list(self._apps)

    @property
    def folders(self) -> Dict[str, Folder]:
        return dict(self._folders)

    @property
    def placeholders(self) -> Dict[str, Placeholder]:
        return self._tracker.placeholders

    @property
    def event_bus(self) -> EventBus:
        return self._events

    @property
    def columns(self) -> int:
        return int(self._settings.get("grid.columns"))

    @property
    def rows(self) -> int:
        return int(self._settings.get("grid.rows"))

    @property
    def page_capacity(self) -> int:
        return self.columns * self.rows

    @property
    def page_count(self) -> int:
        return page_count(len(self._items), self.page_capacity)

    @property
    def current_page(self) -> int:
        return self._current_page

    def custom_sources(self) -> List[str]:
        return list(self._settings.get("custom_sources", []) or [])

    # ------------------------------------------------------------------
    # Commit and persistence
    # ------------------------------------------------------------------
    def _commit(
        self,
        items: Sequence[GridItem],
        reason: str,
        drop_empty_pages: bool = False,
        save: bool = True,
    ) -> None:
        capacity = self.page_capacity
        result = compact(items, capacity)
        if drop_empty_pages:
            result = remove_empty_pages(result, capacity)
        self._items = result
        self._tracker.prune_unused(result)
        self._set_current_page(self._current_page)
        self.itemsChanged.emit()
        self._events.publish(LayoutChangedEvent(
            reason=reason, item_count=len(result), page_count=self.page_count
        ))
        placeholders = self._tracker.paths()
        if placeholders != self._last_placeholders:
            self._last_placeholders = placeholders
            self._events.publish(PlaceholdersChangedEvent(paths=placeholders))
        if save:
            self.schedule_save()

    def load_layout(self) -> bool:
        """Restore the persisted layout; later calls are no-ops."""

        layout = self._persistence.load(
            self._apps, self.hidden_paths(), self.custom_titles(), self.page_capacity
        )
        if layout is None:
            return False
        self._folders = layout.folders
        reconciled = self._tracker.reconcile(layout.items, layout.apps, self._resolver, self.custom_titles())
        self._apps = reconciled.apps
        # Legacy rows and self-healed rows are rewritten in the current format.
        migrate = layout.source == SOURCE_LEGACY or layout.dropped > 0
        self._commit(reconciled.items, "load", save=migrate)
        if self._settings.get("remember_last_page"):
            remembered = self._settings.get("remembered_page_index")
            if isinstance(remembered, int):
                self._set_current_page(remembered)
        return True

    def schedule_save(self) -> None:
        self._save_call.schedule(SAVE_DEBOUNCE_MS)

    def save_now(self) -> bool:
        """Write the layout immediately, cancelling any pending debounced save."""

        self._save_call.cancel()
        items = self._items
        page = self._pending_drag_page
        capacity = self.page_capacity
        if page is not None and is_page_empty(items, page, capacity):
            # The provisional drag page is never persisted.
            items = items[: page * capacity] + items[(page + 1) * capacity:]
        try:
            return self._persistence.save(items, capacity)
        except DatabaseError as exc:
            self._report(exc, {"operation": "save"})
            return False

    def _report(self, error: Exception, context: Optional[dict] = None) -> None:
        self._errors.handle(error, ErrorSeverity.ERROR, context)
        self.errorRaised.emit(str(error))

    # ------------------------------------------------------------------
    # Pages and drag and drop
    # ------------------------------------------------------------------
    def set_current_page(self, page: int) -> None:
        self._set_current_page(page)

    def _set_current_page(self, page: int) -> None:
        clamped = clamp_page(page, len(self._items), self.page_capacity)
        if clamped == self._current_page:
            return
        self._current_page = clamped
        self.currentPageChanged.emit(clamped)
        if self._settings.get("remember_last_page"):
            self._settings.set("remembered_page_index", clamped)

    def compact(self) -> None:
        self._commit(self._items, "compact")

    def remove_empty_pages(self) -> None:
        self._commit(self._items, "remove-empty-pages", drop_empty_pages=True)

    def move_item(self, source_index: int, target_index: int) -> None:
        """Drag the item at *source_index* to *target_index* across pages."""

        items = cascade_move(self._items, source_index, target_index, self.page_capacity)
        self._commit(items, "move")
        if self._pending_drag_page is not None:
            self._drag_cleanup_call.schedule(DRAG_PAGE_CLEANUP_DELAY_MS)

    def create_new_page_for_drag(self) -> int:
        """Append a provisional empty page to drop onto and return its index."""

        if self._pending_drag_page is not None:
            return self._pending_drag_page
        capacity = self.page_capacity
        self._drag_cleanup_call.cancel()
        self._items = pad_to_full_pages(self._items, capacity) + empty_page(capacity)
        self._pending_drag_page = self.page_count - 1
        self.itemsChanged.emit()
        return self._pending_drag_page

    def cleanup_unused_drag_page(self) -> None:
        """Drop the provisional drag page if nothing was placed on it."""

        page = self._pending_drag_page
        self._pending_drag_page = None
        self._drag_cleanup_call.cancel()
        if page is None:
            return
        capacity = self.page_capacity
        if page < self.page_count and is_page_empty(self._items, page, capacity):
            items = self._items[: page * capacity] + self._items[(page + 1) * capacity:]
            self._commit(items, "drag-cleanup", save=False)

    def cancel_drag(self) -> None:
        self.cleanup_unused_drag_page()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def set_grid_geometry(self, columns: int, rows: int) -> None:
        columns = clamp(columns, MIN_COLUMNS, MAX_COLUMNS, self.columns)
        rows = clamp(rows, MIN_ROWS, MAX_ROWS, self.rows)
        if (columns, rows) == (self.columns, self.rows):
            return
        self._settings.set("grid", {"columns": columns, "rows": rows})
        self._commit(self._items, "geometry", drop_empty_pages=True)

    def set_remember_last_page(self, enabled: bool) -> None:
        self._settings.set("remember_last_page", bool(enabled))
        self._settings.set("remembered_page_index", self._current_page if enabled else None)

    def add_custom_source(self, path: str, rescan: bool = True, blocking: bool = False) -> bool:
        normalized = standardize(path)
        if not os.path.isdir(normalized):
            raise SourceError(f"Not a directory: {path}")
        sources = self.custom_sources()
        if normalized in sources:
            return False
        self._settings.set("custom_sources", sources + [normalized])
        self.restart_watching()
        if rescan:
            self.scan_applications(preserve_order=True, blocking=blocking)
        return True

    def remove_custom_source(self, path: str, rescan: bool = True, blocking: bool = False) -> bool:
        return self.remove_custom_sources([path], rescan=rescan, blocking=blocking)

    def remove_custom_sources(
        self, paths: Iterable[str], rescan: bool = True, blocking: bool = False
    ) -> bool:
        """Stop using *paths* as sources and purge everything found under them."""

        removed = [standardize(path) for path in paths]
        sources = self.custom_sources()
        remaining = [source for source in sources if source not in removed]
        if len(remaining) == len(sources):
            return False
        purge = self._tracker.purge(
            removed, self._items, self._apps, self._folders, self.custom_titles(), self.hidden_paths()
        )
        self._apps = purge.apps
        self._settings.set("custom_titles", purge.custom_titles)
        self._settings.set("hidden_paths", purge.hidden_paths)
        self._settings.set("custom_sources", remaining)
        self._commit(purge.items, "purge-sources", drop_empty_pages=True)
        self.restart_watching()
        if rescan:
            self.scan_applications(preserve_order=True, blocking=blocking)
        return True

    def reset_custom_sources(self, rescan: bool = True, blocking: bool = False) -> bool:
        return self.remove_custom_sources(self.custom_sources(), rescan=rescan, blocking=blocking)

    def _on_setting_changed(self, key: str, value: Any) -> None:
        self._events.publish(SettingChangedEvent(key=key, value=value))

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------
    def export_layout(self) -> dict:
        return export_layout(self._items, self.page_capacity)

    def import_layout(self, payload: Any) -> ImportResult:
        """Replace the layout with *payload*; rejected documents change nothing."""

        result = validate_import(payload)
        if not result.ok:
            LOGGER.warning("Rejected layout import: %s", result.reason)
            return result
        plan = plan_import(payload, self._apps, self._folders, self.page_capacity)
        self._folders = plan.folders
        self._tracker.clear()
        self._commit(plan.items, "import")
        message = f"Imported {len(plan.items)} slots"
        if plan.unmatched_paths:
            message += f"; {len(plan.unmatched_paths)} unknown applications skipped"
        return ImportResult(True, message)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Stop watching and flush a pending save."""

        self.stop_watching()
        self._volume_rescan_call.cancel()
        self._drag_cleanup_call.cancel()
        if self._save_call.is_pending():
            self.save_now()


__all__ = ["LayoutManager"]
