from __future__ import annotations

import json
from pathlib import Path

import pytest

pytest.importorskip("PySide6", reason="PySide6 is required for settings tests", exc_type=ImportError)
pytest.importorskip("PySide6.QtTest", reason="Qt test helpers not available", exc_type=ImportError)

from PySide6.QtTest import QSignalSpy

from launchgrid.errors import SettingsLoadError, SettingsValidationError
from launchgrid.settings.manager import SettingsManager
from launchgrid.settings.schema import DEFAULT_SETTINGS, merge_with_defaults


def test_settings_manager_roundtrip(tmp_path: Path, qapp) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()
    assert settings_path.exists()
    assert manager.get("grid.columns") == 7
    assert manager.get("custom_sources") == []

    spy = QSignalSpy(manager.settingsChanged)
    source = tmp_path / "Apps"
    manager.set("custom_sources", [source])
    qapp.processEvents()
    assert spy.count() == 1
    assert manager.get("custom_sources") == [str(source)]
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored["custom_sources"] == [str(source)]


def test_grid_values_are_clamped(tmp_path: Path, qapp) -> None:
    manager = SettingsManager(path=tmp_path / "settings.json")
    manager.load()
    manager.set("grid", {"columns": 40, "rows": 1})
    assert manager.get("grid") == {"columns": 10, "rows": 3}
    manager.set("grid.columns", 3)
    assert manager.get("grid.columns") == 3
    assert manager.get("grid.rows") == 3


def test_get_returns_copies(tmp_path: Path, qapp) -> None:
    manager = SettingsManager(path=tmp_path / "settings.json")
    manager.load()
    titles = manager.get("custom_titles")
    titles["/x.app"] = "X"
    assert manager.get("custom_titles") == {}
    assert manager.get("missing.key", "fallback") == "fallback"


def test_invalid_value_is_rejected_without_writing(tmp_path: Path, qapp) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()
    before = settings_path.read_text(encoding="utf-8")
    with pytest.raises(SettingsValidationError):
        manager.set("remember_last_page", "yes")
    assert settings_path.read_text(encoding="utf-8") == before
    assert manager.get("remember_last_page") is False


def test_corrupt_file_raises_load_error(tmp_path: Path, qapp) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text("{nope", encoding="utf-8")
    with pytest.raises(SettingsLoadError):
        SettingsManager(path=settings_path).load()


def test_merge_with_defaults_normalises_entries(tmp_path: Path) -> None:
    merged = merge_with_defaults({
        "schema": "something-else",
        "hidden_paths": [str(tmp_path / "a" / ".." / "b.app"), "", 3, str(tmp_path / "b.app")],
        "custom_titles": {"/x.app": "  Ex  ", "/y.app": "   "},
        "remembered_page_index": -2,
        "grid": {"columns": "8", "rows": None},
    })
    assert merged["schema"] == DEFAULT_SETTINGS["schema"]
    assert merged["hidden_paths"] == [str(tmp_path / "b.app")]
    assert merged["custom_titles"] == {"/x.app": "Ex"}
    assert merged["remembered_page_index"] == 0
    assert merged["grid"] == {"columns": 8, "rows": 5}
