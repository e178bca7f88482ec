"""JSON export and all-or-nothing import of the grid layout."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..config import DEFAULT_FOLDER_NAME
from ..domain.models import (
    KIND_APP,
    KIND_FOLDER,
    KIND_MISSING,
    AppItem,
    AppRecord,
    Folder,
    FolderItem,
    GridItem,
    item_kind,
    item_name,
    item_path,
    new_empty,
)
from ..domain.services.paging import pad_to_full_pages, page_count
from ..errors import ImportValidationError

EXPORT_SCHEMA: dict[str, Any] = {
    "$id": "launchgrid/layout-export.schema.json",
    "type": "object",
    "required": ["pages"],
    "properties": {
        "exportDate": {"type": "string"},
        "totalPages": {"type": "integer", "minimum": 0},
        "totalItems": {"type": "integer", "minimum": 0},
        "pages": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["pageIndex", "position", "kind"],
                "properties": {
                    "pageIndex": {"type": "integer", "minimum": 0},
                    "position": {"type": "integer", "minimum": 0},
                    "kind": {"type": "string"},
                    "name": {"type": ["string", "null"]},
                    "path": {"type": ["string", "null"]},
                    "folderApps": {"type": "array", "items": {"type": "string"}},
                    "folderAppPaths": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

_validator = Draft202012Validator(EXPORT_SCHEMA)


@dataclass
class ImportResult:
    ok: bool
    reason: str = ""


@dataclass
class ImportPlan:
    """Layout computed from an import document, ready to be swapped in."""

    items: List[GridItem]
    folders: Dict[str, Folder]
    unmatched_paths: List[str] = field(default_factory=list)
    appended: int = 0


def export_layout(
    items: Sequence[GridItem],
    capacity: int,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    pages: List[dict[str, Any]] = []
    for index, item in enumerate(items):
        page, position = divmod(index, capacity)
        entry: dict[str, Any] = {
            "pageIndex": page,
            "position": position,
            "kind": item_kind(item),
            "name": item_name(item),
            "path": item_path(item),
        }
        if isinstance(item, FolderItem):
            entry["folderApps"] = [app.name for app in item.folder.apps]
            entry["folderAppPaths"] = item.folder.member_paths()
        pages.append(entry)
    return {
        "exportDate": (now or datetime.now()).isoformat(timespec="seconds"),
        "totalPages": page_count(len(items), capacity),
        "totalItems": len(items),
        "pages": pages,
    }


def export_layout_json(items: Sequence[GridItem], capacity: int, now: Optional[datetime] = None) -> str:
    return json.dumps(export_layout(items, capacity, now), ensure_ascii=False, indent=2)


def validate_import(payload: Any) -> ImportResult:
    """Check *payload* against the export format without touching any state."""

    if not isinstance(payload, dict):
        return ImportResult(False, "Import document must be a JSON object.")
    error = best_match(_validator.iter_errors(payload))
    if error is not None:
        location = "/".join(str(part) for part in error.absolute_path) or "document"
        return ImportResult(False, f"Invalid layout at {location}: {error.message}")

    seen: set[tuple[int, int]] = set()
    for entry in payload["pages"]:
        key = (entry["pageIndex"], entry["position"])
        if key in seen:
            return ImportResult(False, f"Duplicate slot at page {key[0]}, position {key[1]}.")
        seen.add(key)
        kind = entry["kind"]
        if kind in (KIND_APP, KIND_MISSING) and not entry.get("path"):
            return ImportResult(False, f"Entry at page {key[0]}, position {key[1]} has no path.")
    return ImportResult(True)


def parse_import(text: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ImportValidationError(f"Not valid JSON: {exc}") from exc
    result = validate_import(payload)
    if not result.ok:
        raise ImportValidationError(result.reason)
    return payload


def plan_import(
    payload: dict[str, Any],
    apps: Sequence[AppRecord],
    folders: Dict[str, Folder],
    capacity: int,
) -> ImportPlan:
    """Map an import document onto the installed applications.

    Raises :class:`ImportValidationError` before computing anything if the
    document is malformed. Imported paths with no installed application,
    folders with no matching member and unknown kinds become empty slots.
    Installed applications the document never mentions go onto new pages
    after the imported ones.
    """

    result = validate_import(payload)
    if not result.ok:
        raise ImportValidationError(result.reason)

    by_path = {app.path: app for app in apps}
    used: set[str] = set()
    unmatched: List[str] = []
    planned_folders: Dict[str, Folder] = {}
    items: List[GridItem] = []

    entries = sorted(payload["pages"], key=lambda entry: (entry["pageIndex"], entry["position"]))
    for entry in entries:
        kind = entry["kind"]
        if entry["position"] < capacity:
            # Slots skipped by the document stay empty.
            target = entry["pageIndex"] * capacity + entry["position"]
            items.extend(new_empty() for _ in range(target - len(items)))
        if kind in (KIND_APP, KIND_MISSING):
            path = entry["path"]
            record = by_path.get(path)
            if record is None or path in used:
                unmatched.append(path)
                items.append(new_empty())
                continue
            used.add(path)
            items.append(AppItem(record))
        elif kind == KIND_FOLDER:
            members: List[AppRecord] = []
            paths = entry.get("folderAppPaths") or []
            for path in paths:
                record = by_path.get(path)
                if record is None or path in used:
                    unmatched.append(path)
                    continue
                used.add(path)
                members.append(record)
            if not paths:
                # Older exports only list member names.
                for member_name in entry.get("folderApps", []):
                    record = next(
                        (app for app in apps if app.name == member_name and app.path not in used), None
                    )
                    if record is not None:
                        used.add(record.path)
                        members.append(record)
            if not members:
                items.append(new_empty())
                continue
            name = (entry.get("name") or "").strip()
            folder = _matching_folder(folders, name, members) or Folder(name=name or DEFAULT_FOLDER_NAME, apps=members)
            folder.apps = members
            planned_folders[folder.id] = folder
            items.append(FolderItem(folder))
        else:
            items.append(new_empty())

    leftovers = [AppItem(app) for app in apps if app.path not in used]
    if leftovers:
        items = pad_to_full_pages(items, capacity)
        items.extend(leftovers)
        items = pad_to_full_pages(items, capacity)
    return ImportPlan(items=items, folders=planned_folders, unmatched_paths=unmatched, appended=len(leftovers))


def _matching_folder(folders: Dict[str, Folder], name: str, members: Sequence[AppRecord]) -> Optional[Folder]:
    wanted = {app.path for app in members}
    for folder in folders.values():
        if folder.name == name and set(folder.member_paths()) == wanted:
            return folder
    return None


__all__ = [
    "EXPORT_SCHEMA",
    "ImportPlan",
    "ImportResult",
    "export_layout",
    "export_layout_json",
    "parse_import",
    "plan_import",
    "validate_import",
]
