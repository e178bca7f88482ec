"""Load and save the grid through the layout repository.

Saving always replaces the whole snapshot. Loading prefers the page/slot
rows and falls back to the legacy flat-order rows, which are cleared by the
next save.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..config import DEFAULT_FOLDER_NAME
from ..domain.models import (
    KIND_APP,
    KIND_EMPTY,
    KIND_FOLDER,
    KIND_MISSING,
    AppItem,
    AppRecord,
    EmptySlot,
    Folder,
    FolderItem,
    GridItem,
    PlaceholderItem,
    folder_member_paths,
    new_empty,
)
from ..domain.repositories import ILayoutRepository, LegacyItemRow, PageEntryRow
from ..domain.services.merge import place_new_items
from ..domain.services.visibility import filter_hidden
from ..errors import DatabaseError
from ..io.metadata import MetadataResolver
from ..utils.logging import get_logger
from ..utils.pathutils import display_stem, is_valid_bundle
from .placeholders import MissingItemTracker

LOGGER = get_logger()

SOURCE_PAGE_ENTRIES = "page_entries"
SOURCE_LEGACY = "legacy"


@dataclass
class LoadedLayout:
    items: List[GridItem]
    folders: Dict[str, Folder]
    apps: List[AppRecord]
    source: str
    dropped: int = 0
    """Number of rows that could not be restored and became empty slots."""


def slot_id(page: int, position: int) -> str:
    return f"page-{page}-pos-{position}"


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if raw:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            LOGGER.debug("Unparseable folder timestamp %r", raw)
    return datetime.now()


@dataclass
class _RowContext:
    known: Dict[str, AppRecord]
    custom_titles: Mapping[str, str]
    dropped: int = 0
    restored: Dict[str, AppRecord] = field(default_factory=dict)


class LayoutPersistence:
    """State machine over the layout store: unloaded, then loaded."""

    def __init__(
        self,
        repository: ILayoutRepository,
        resolver: MetadataResolver,
        tracker: MissingItemTracker,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._tracker = tracker
        self._applied = False

    @property
    def applied(self) -> bool:
        return self._applied

    def mark_applied(self) -> None:
        """Treat the store as loaded; used after a destructive rebuild."""

        self._applied = True

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------
    def load(
        self,
        apps: Sequence[AppRecord] = (),
        hidden_paths: Iterable[str] = (),
        custom_titles: Optional[Mapping[str, str]] = None,
        capacity: int = 1,
    ) -> Optional[LoadedLayout]:
        """Restore the persisted layout once.

        Returns ``None`` when the layout was already applied or nothing is
        stored.
        """

        if self._applied:
            return None
        context = _RowContext(known={app.path: app for app in apps}, custom_titles=custom_titles or {})

        layout: Optional[LoadedLayout] = None
        try:
            rows = self._repository.fetch_page_entries()
        except DatabaseError as exc:
            LOGGER.warning("Current layout rows unreadable, trying legacy rows: %s", exc)
            rows = []
        if rows:
            items, folders = self._from_page_entries(rows, context)
            layout = LoadedLayout(items, folders, [], SOURCE_PAGE_ENTRIES)
        else:
            try:
                legacy = self._repository.fetch_legacy_items()
            except DatabaseError as exc:
                LOGGER.warning("Legacy layout rows unreadable: %s", exc)
                legacy = []
            if legacy:
                items, folders = self._from_legacy(legacy, context)
                layout = LoadedLayout(items, folders, [], SOURCE_LEGACY)
        if layout is None:
            # Nothing stored: the first scan defines the layout.
            self._applied = True
            return None

        layout.items = self._dedupe(layout.items, layout.folders)
        catalog = list(apps) if apps else self._catalog_from(layout.items, layout.folders)
        if apps and layout.source == SOURCE_LEGACY:
            members = folder_member_paths(layout.folders)
            placed = {item.app.path for item in layout.items if isinstance(item, AppItem)}
            extra = [AppItem(app) for app in catalog if app.path not in members and app.path not in placed]
            layout.items = place_new_items(layout.items, extra, max(capacity, 1))
        layout.items, layout.apps = filter_hidden(layout.items, layout.folders, catalog, hidden_paths)
        layout.dropped = context.dropped
        self._applied = True
        LOGGER.info(
            "Restored %d slots and %d folders from %s rows", len(layout.items), len(layout.folders), layout.source
        )
        return layout

    def _record_for(self, path: Optional[str], context: _RowContext) -> Optional[AppRecord]:
        if not path:
            return None
        record = context.known.get(path) or context.restored.get(path)
        if record is not None:
            return record
        if not is_valid_bundle(path):
            return None
        record = self._resolver.record_for(path, self._tracker.removable_source_for(path), context.custom_titles)
        context.restored[path] = record
        return record

    def _offline_member(self, path: Optional[str]) -> Optional[AppRecord]:
        """Keep a folder member whose removable source is not mounted right now."""

        if not path:
            return None
        source = self._tracker.removable_source_for(path)
        if source is None:
            return None
        return AppRecord(path=path, name=display_stem(path), source_dir=source)

    def _app_slot(
        self,
        path: Optional[str],
        display_name: Optional[str],
        removable_source: Optional[str],
        context: _RowContext,
        fallback_token: str,
    ) -> GridItem:
        record = self._record_for(path, context)
        if record is not None:
            return AppItem(record)
        if path:
            placeholder = self._tracker.track_missing(path, display_name, removable_source)
            if placeholder is not None:
                return PlaceholderItem(placeholder)
        context.dropped += 1
        return EmptySlot(fallback_token)

    def _folder_slot(
        self,
        folder_id: Optional[str],
        name: Optional[str],
        member_paths: Sequence[str],
        created_at: Optional[str],
        folders: Dict[str, Folder],
        context: _RowContext,
        fallback_token: str,
    ) -> GridItem:
        folder_id = folder_id or str(uuid.uuid4())
        if folder_id in folders:
            context.dropped += 1
            return EmptySlot(fallback_token)
        members: List[AppRecord] = []
        for path in member_paths:
            record = self._record_for(path, context)
            if record is None:
                record = self._offline_member(path)
            if record is not None and record not in members:
                members.append(record)
        if not members:
            context.dropped += 1
            return EmptySlot(fallback_token)
        folder = Folder(
            name=name or DEFAULT_FOLDER_NAME,
            apps=members,
            id=folder_id,
            created_at=_parse_timestamp(created_at),
        )
        folders[folder.id] = folder
        return FolderItem(folder)

    def _from_page_entries(
        self, rows: Sequence[PageEntryRow], context: _RowContext
    ) -> tuple[List[GridItem], Dict[str, Folder]]:
        folders: Dict[str, Folder] = {}
        items: List[GridItem] = []
        for row in sorted(rows, key=lambda entry: (entry.page_index, entry.position)):
            if row.kind == KIND_FOLDER:
                items.append(self._folder_slot(
                    row.folder_id, row.folder_name, row.member_paths, row.created_at, folders, context, row.slot_id
                ))
            elif row.kind in (KIND_APP, KIND_MISSING):
                items.append(self._app_slot(
                    row.app_path, row.app_display_name, row.removable_source, context, row.slot_id
                ))
            elif row.kind == KIND_EMPTY:
                items.append(EmptySlot(row.slot_id))
            else:
                LOGGER.debug("Unknown layout row kind %r at %s", row.kind, row.slot_id)
                items.append(EmptySlot(row.slot_id))
        return items, folders

    def _from_legacy(
        self, rows: Sequence[LegacyItemRow], context: _RowContext
    ) -> tuple[List[GridItem], Dict[str, Folder]]:
        folders: Dict[str, Folder] = {}
        items: List[GridItem] = []
        for row in sorted(rows, key=lambda entry: entry.order_index):
            if row.kind == KIND_FOLDER:
                items.append(self._folder_slot(
                    row.id, row.folder_name, row.app_paths, row.created_at, folders, context, row.id
                ))
            elif row.kind == KIND_APP:
                items.append(self._app_slot(row.app_path, None, None, context, row.id))
            elif row.kind == KIND_EMPTY:
                items.append(EmptySlot(row.id))
            else:
                items.append(EmptySlot(row.id))
        return items, folders

    @staticmethod
    def _dedupe(items: Sequence[GridItem], folders: Dict[str, Folder]) -> List[GridItem]:
        """Blank out top-level entries that duplicate a folder member or each other."""

        members = folder_member_paths(folders)
        seen: set[str] = set()
        result: List[GridItem] = []
        for item in items:
            path = None
            if isinstance(item, AppItem):
                path = item.app.path
            elif isinstance(item, PlaceholderItem):
                path = item.placeholder.path
            if path is not None and (path in members or path in seen):
                result.append(new_empty())
                continue
            if path is not None:
                seen.add(path)
            result.append(item)
        return result

    @staticmethod
    def _catalog_from(items: Sequence[GridItem], folders: Dict[str, Folder]) -> List[AppRecord]:
        catalog: Dict[str, AppRecord] = {}
        for item in items:
            if isinstance(item, AppItem):
                catalog.setdefault(item.app.path, item.app)
            elif isinstance(item, FolderItem):
                for app in item.folder.apps:
                    catalog.setdefault(app.path, app)
        return list(catalog.values())

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------
    def save(self, items: Sequence[GridItem], capacity: int) -> bool:
        """Replace the stored snapshot with *items*; empty layouts are not saved."""

        if not items:
            return False
        rows = self.rows_for(items, capacity)
        self._repository.replace_page_entries(rows)
        LOGGER.debug("Saved %d layout rows", len(rows))
        return True

    @staticmethod
    def rows_for(items: Sequence[GridItem], capacity: int) -> List[PageEntryRow]:
        rows: List[PageEntryRow] = []
        for index, item in enumerate(items):
            page, position = divmod(index, capacity)
            row = PageEntryRow(slot_id=slot_id(page, position), page_index=page, position=position, kind=KIND_EMPTY)
            if isinstance(item, AppItem):
                row.kind = KIND_APP
                row.app_path = item.app.path
                row.app_display_name = item.app.name
            elif isinstance(item, FolderItem):
                row.kind = KIND_FOLDER
                row.folder_id = item.folder.id
                row.folder_name = item.folder.name
                row.member_paths = item.folder.member_paths()
                row.created_at = item.folder.created_at.isoformat()
            elif isinstance(item, PlaceholderItem):
                row.kind = KIND_MISSING
                row.app_path = item.placeholder.path
                row.app_display_name = item.placeholder.display_name
                row.removable_source = item.placeholder.removable_source
            elif isinstance(item, EmptySlot):
                pass
            rows.append(row)
        return rows

    def reset(self) -> None:
        """Forget the stored layout and return to the unloaded state."""

        self._repository.clear()
        self._applied = False


__all__ = ["LayoutPersistence", "LoadedLayout", "SOURCE_LEGACY", "SOURCE_PAGE_ENTRIES", "slot_id"]
