"""Placeholders for applications that vanished from custom sources."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..domain.models import (
    AppItem,
    AppRecord,
    EmptySlot,
    Folder,
    FolderItem,
    GridItem,
    Placeholder,
    PlaceholderItem,
    new_empty,
)
from ..domain.services.folders import prune_folders
from ..io.metadata import MetadataResolver
from ..utils.logging import get_logger
from ..utils.pathutils import display_stem, first_matching_root, is_valid_bundle, resolve, standardize

LOGGER = get_logger()


@dataclass
class ReconcileResult:
    items: List[GridItem]
    apps: List[AppRecord]
    changed: bool = False


@dataclass
class PurgeResult:
    items: List[GridItem]
    apps: List[AppRecord]
    custom_titles: Dict[str, str]
    hidden_paths: List[str]
    removed_paths: set[str] = field(default_factory=set)


class MissingItemTracker:
    """Own the map of placeholder paths.

    Only paths below a currently configured custom source may be tracked;
    anything else is meant to be deleted by the caller.
    """

    def __init__(
        self,
        sources: Callable[[], Iterable[str]],
        exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        self._sources = sources
        self._exists = exists
        self._placeholders: Dict[str, Placeholder] = {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @property
    def placeholders(self) -> Dict[str, Placeholder]:
        return dict(self._placeholders)

    def paths(self) -> tuple[str, ...]:
        return tuple(sorted(self._placeholders))

    def removable_source_for(self, path: str) -> Optional[str]:
        target = standardize(path)
        for source in self._sources():
            if not source:
                continue
            normalized = standardize(source)
            # Bundle paths are symlink-resolved; accept either spelling of the source.
            if first_matching_root(target, (normalized, resolve(normalized))):
                return normalized
        return None

    def current(self, path: str) -> Optional[Placeholder]:
        placeholder = self._placeholders.get(path)
        if placeholder is not None and self.removable_source_for(path) is None:
            del self._placeholders[path]
            return None
        return placeholder

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def track_missing(
        self,
        path: str,
        display_name: Optional[str] = None,
        removable_source: Optional[str] = None,
    ) -> Optional[Placeholder]:
        source = self.removable_source_for(path)
        if source is None:
            self._placeholders.pop(path, None)
            return None
        if removable_source:
            # Nested custom sources: keep the hinted one while it is still configured.
            hinted = standardize(removable_source)
            configured = {standardize(entry) for entry in self._sources() if entry}
            if hinted in configured and first_matching_root(standardize(path), (hinted,)):
                source = hinted
        existing = self._placeholders.get(path)
        name = next(
            candidate
            for candidate in (
                (display_name or "").strip(),
                existing.display_name if existing else "",
                display_stem(path),
                path,
            )
            if candidate
        )
        placeholder = Placeholder(path=path, display_name=name, removable_source=source)
        self._placeholders[path] = placeholder
        return placeholder

    def forget(self, path: str) -> None:
        self._placeholders.pop(path, None)

    def clear(self) -> None:
        self._placeholders.clear()

    def prune_unused(self, items: Sequence[GridItem]) -> None:
        referenced = {item.placeholder.path for item in items if isinstance(item, PlaceholderItem)}
        for path in list(self._placeholders):
            if path not in referenced:
                del self._placeholders[path]

    def reconcile(
        self,
        items: Sequence[GridItem],
        apps: Sequence[AppRecord],
        resolver: MetadataResolver,
        custom_titles: Optional[Mapping[str, str]] = None,
    ) -> ReconcileResult:
        """Convert vanished applications to placeholders and back.

        Items keep their slot in both directions, so the sequence length
        never changes.
        """

        known = {app.path: app for app in apps}
        catalog = list(apps)
        result: List[GridItem] = []
        changed = False
        for item in items:
            if isinstance(item, AppItem):
                if self._exists(item.app.path):
                    result.append(item)
                    continue
                placeholder = self.track_missing(item.app.path, item.app.name, item.app.source_dir)
                result.append(PlaceholderItem(placeholder) if placeholder else new_empty())
                changed = True
            elif isinstance(item, PlaceholderItem):
                path = item.placeholder.path
                if self._exists(path) and is_valid_bundle(path):
                    record = known.get(path)
                    if record is None:
                        source = item.placeholder.removable_source or self.removable_source_for(path)
                        record = resolver.record_for(path, source, custom_titles)
                        known[path] = record
                        catalog.append(record)
                    self.forget(path)
                    result.append(AppItem(record))
                    changed = True
                    continue
                placeholder = self.track_missing(path, item.placeholder.display_name)
                if placeholder is None:
                    result.append(new_empty())
                    changed = True
                else:
                    result.append(PlaceholderItem(placeholder))
                    changed = changed or placeholder != item.placeholder
            elif isinstance(item, (FolderItem, EmptySlot)):
                result.append(item)
            else:
                result.append(new_empty())
                changed = True
        self.prune_unused(result)
        return ReconcileResult(items=result, apps=catalog, changed=changed)

    def purge(
        self,
        removed_sources: Iterable[str],
        items: Sequence[GridItem],
        apps: Sequence[AppRecord],
        folders: Dict[str, Folder],
        custom_titles: Mapping[str, str],
        hidden_paths: Iterable[str],
    ) -> PurgeResult:
        """Delete everything that lives under *removed_sources*.

        Top-level entries become empty slots, folder memberships are dropped
        (deleting folders that end up empty) and titles and hidden paths are
        pruned.
        """

        sources: list[str] = []
        for source in removed_sources:
            if source:
                sources.extend({standardize(source), resolve(source)})

        def doomed(path: str) -> bool:
            return first_matching_root(path, sources) is not None

        removed: set[str] = set()
        result: List[GridItem] = []
        for item in items:
            path = None
            if isinstance(item, AppItem):
                path = item.app.path
            elif isinstance(item, PlaceholderItem):
                path = item.placeholder.path
            if path is not None and doomed(path):
                removed.add(path)
                result.append(new_empty())
            else:
                result.append(item)

        for path, placeholder in list(self._placeholders.items()):
            source = placeholder.removable_source
            if doomed(path) or (source is not None and standardize(source) in sources):
                removed.add(path)
                del self._placeholders[path]

        member_paths = {app.path for folder in folders.values() for app in folder.apps if doomed(app.path)}
        removed |= member_paths
        result = prune_folders(result, folders, member_paths)

        kept_apps = []
        for app in apps:
            if doomed(app.path):
                removed.add(app.path)
            else:
                kept_apps.append(app)

        titles = {path: title for path, title in custom_titles.items() if not doomed(path)}
        hidden = [path for path in hidden_paths if not doomed(path)]
        if removed:
            LOGGER.info("Purged %d entries under %s", len(removed), ", ".join(sources))
        return PurgeResult(
            items=result,
            apps=kept_apps,
            custom_titles=titles,
            hidden_paths=hidden,
            removed_paths=removed,
        )


__all__ = ["MissingItemTracker", "PurgeResult", "ReconcileResult"]
