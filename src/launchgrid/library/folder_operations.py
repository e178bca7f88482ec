"""Folder create/add/remove/rename for LayoutManager."""

from __future__ import annotations

from typing import Optional, Sequence

from ..config import DEFAULT_FOLDER_NAME
from ..domain.models import AppRecord, Folder
from ..domain.services import folders as folder_ops
from ..errors import ItemNotFoundError


class FolderOperationsMixin:
    """Mixin providing folder operations for LayoutManager."""

    def folder(self, folder_id: str) -> Optional[Folder]:
        return self._folders.get(folder_id)

    def create_folder(
        self,
        paths: Sequence[str],
        name: str = DEFAULT_FOLDER_NAME,
        insert_at: Optional[int] = None,
    ) -> Folder:
        records = [self._require_record(path) for path in paths]
        items, folder = folder_ops.create_folder(
            self._items, self._folders, records, self.page_capacity, name, insert_at
        )
        self._commit(items, "create-folder")
        return folder

    def add_app_to_folder(self, folder_id: str, path: str) -> None:
        record = self._require_record(path)
        items = folder_ops.add_app_to_folder(self._items, self._folders, folder_id, record, self.page_capacity)
        self._commit(items, "add-to-folder")

    def remove_app_from_folder(self, folder_id: str, path: str) -> None:
        items = folder_ops.remove_app_from_folder(
            self._items, self._folders, folder_id, path, self.page_capacity
        )
        self._commit(items, "remove-from-folder", drop_empty_pages=True)

    def rename_folder(self, folder_id: str, name: str) -> Folder:
        folder = folder_ops.rename_folder(self._folders, folder_id, name)
        self._commit(self._items, "rename-folder")
        return folder

    def _require_record(self, path: str) -> AppRecord:
        record = self._record_for_path(path)
        if record is None:
            raise ItemNotFoundError(f"No application at {path}")
        return record
