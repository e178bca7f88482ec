"""Hidden applications and custom titles for LayoutManager."""

from __future__ import annotations

import os
from typing import Dict, List, Optional

from ..domain.models import AppItem, AppRecord, FolderItem, GridItem
from ..domain.services.folders import first_empty_index
from ..domain.services.merge import place_new_items
from ..domain.services.visibility import filter_hidden
from ..utils.logging import get_logger
from ..utils.pathutils import first_matching_root, is_valid_bundle, resolve

LOGGER = get_logger()


class VisibilityMixin:
    """Mixin providing hide/unhide and title overrides for LayoutManager."""

    def hidden_paths(self) -> List[str]:
        return list(self._settings.get("hidden_paths", []) or [])

    def custom_titles(self) -> Dict[str, str]:
        return dict(self._settings.get("custom_titles", {}) or {})

    def hide_app(self, path: str) -> bool:
        """Remove *path* from the grid, its folder and the catalog, remembering it."""

        path = resolve(path)
        hidden = self.hidden_paths()
        if path in hidden:
            return False
        self._settings.set("hidden_paths", hidden + [path])
        self._tracker.forget(path)
        items, self._apps = filter_hidden(self._items, self._folders, self._apps, [path])
        self._commit(items, "hide", drop_empty_pages=True)
        return True

    def unhide_app(self, path: str) -> bool:
        """Forget that *path* is hidden and put it back if the bundle exists."""

        path = resolve(path)
        hidden = self.hidden_paths()
        if path not in hidden:
            return False
        self._settings.set("hidden_paths", [entry for entry in hidden if entry != path])
        if not is_valid_bundle(path):
            LOGGER.info("Unhid %s but the bundle is not present", path)
            return True

        record = self._record_for_path(path)
        if record is None:
            source = first_matching_root(path, self.search_roots())
            record = self._resolver.record_for(path, source, self.custom_titles())
            self._apps.append(record)
        items: List[GridItem] = list(self._items)
        slot = first_empty_index(items)
        if slot is None:
            items = place_new_items(items, [AppItem(record)], self.page_capacity)
        else:
            items[slot] = AppItem(record)
        self._commit(items, "unhide")
        return True

    def set_custom_title(self, path: str, title: str) -> None:
        path = resolve(path)
        cleaned = title.strip()
        if not cleaned:
            self.clear_custom_title(path)
            return
        titles = self.custom_titles()
        titles[path] = cleaned
        self._settings.set("custom_titles", titles)
        self._retitle(path, cleaned)

    def clear_custom_title(self, path: str) -> None:
        path = resolve(path)
        titles = self.custom_titles()
        if titles.pop(path, None) is None:
            return
        self._settings.set("custom_titles", titles)
        name: Optional[str] = None
        if os.path.isdir(path):
            name, _icon = self._resolver.resolve(path)
        self._retitle(path, name)

    def _retitle(self, path: str, name: Optional[str]) -> None:
        record = self._record_for_path(path)
        if record is None or name is None or record.name == name:
            return
        renamed = AppRecord(path=record.path, name=name, icon=record.icon, source_dir=record.source_dir)
        self._apps = [renamed if app.path == path else app for app in self._apps]
        for folder in self._folders.values():
            folder.apps = [renamed if app.path == path else app for app in folder.apps]
        items: List[GridItem] = []
        for item in self._items:
            if isinstance(item, AppItem) and item.app.path == path:
                items.append(AppItem(renamed))
            elif isinstance(item, FolderItem):
                items.append(FolderItem(self._folders.get(item.folder.id, item.folder)))
            else:
                items.append(item)
        self._commit(items, "retitle")
