"""Schema helpers for the settings file."""

from __future__ import annotations

import os
from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import DEFAULT_COLUMNS, DEFAULT_ROWS, MAX_COLUMNS, MAX_ROWS, MIN_COLUMNS, MIN_ROWS

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "launchgrid/settings.schema.json",
    "type": "object",
    "required": ["schema", "grid", "custom_sources", "hidden_paths", "custom_titles"],
    "properties": {
        "schema": {"const": "launchgrid/settings@1"},
        "grid": {
            "type": "object",
            "required": ["columns", "rows"],
            "properties": {
                "columns": {"type": "integer", "minimum": MIN_COLUMNS, "maximum": MAX_COLUMNS},
                "rows": {"type": "integer", "minimum": MIN_ROWS, "maximum": MAX_ROWS},
            },
            "additionalProperties": False,
        },
        "custom_sources": {"type": "array", "items": {"type": "string"}},
        "hidden_paths": {"type": "array", "items": {"type": "string"}},
        "custom_titles": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "remember_last_page": {"type": "boolean"},
        "remembered_page_index": {"type": ["integer", "null"], "minimum": 0},
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "launchgrid/settings@1",
    "grid": {"columns": DEFAULT_COLUMNS, "rows": DEFAULT_ROWS},
    "custom_sources": [],
    "hidden_paths": [],
    "custom_titles": {},
    "remember_last_page": False,
    "remembered_page_index": None,
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def clamp(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _normalise_paths(entries: list[Any]) -> list[str]:
    normalised: list[str] = []
    for entry in entries:
        try:
            raw = os.fspath(entry)
        except TypeError:
            continue
        if not isinstance(raw, str) or not raw.strip():
            continue
        path = os.path.normpath(os.path.abspath(os.path.expanduser(raw.strip())))
        if path not in normalised:
            normalised.append(path)
    return normalised


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS`, normalise and validate."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key == "grid" and isinstance(value, dict):
                grid = merged["grid"]
                grid["columns"] = clamp(value.get("columns"), MIN_COLUMNS, MAX_COLUMNS, DEFAULT_COLUMNS)
                grid["rows"] = clamp(value.get("rows"), MIN_ROWS, MAX_ROWS, DEFAULT_ROWS)
                continue
            if key in ("custom_sources", "hidden_paths") and isinstance(value, list):
                merged[key] = _normalise_paths(value)
                continue
            if key == "custom_titles" and isinstance(value, dict):
                merged[key] = {
                    str(path): str(title).strip()
                    for path, title in value.items()
                    if isinstance(title, str) and title.strip()
                }
                continue
            if key == "remembered_page_index" and value is not None:
                merged[key] = max(0, int(value)) if isinstance(value, int) else None
                continue
            if key == "schema":
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "clamp", "merge_with_defaults", "validate_settings"]
