"""End-to-end behaviour of the layout coordinator with blocking scans."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

pytest.importorskip("PySide6", reason="PySide6 is required for coordinator tests", exc_type=ImportError)
pytest.importorskip("PySide6.QtTest", reason="Qt test helpers not available", exc_type=ImportError)

from PySide6.QtTest import QSignalSpy

from launchgrid.domain.models import AppItem, FolderItem, PlaceholderItem, item_kind, item_path
from launchgrid.errors import ScanError, SourceError
from launchgrid.errors.handler import ErrorOccurredEvent
from launchgrid.events.layout_events import LayoutChangedEvent, PlaceholdersChangedEvent, ScanCompletedEvent
from launchgrid.infrastructure.db.pool import ConnectionPool
from launchgrid.infrastructure.repositories.sqlite_layout_repository import SQLiteLayoutRepository
from launchgrid.io.scanner import ApplicationScanner
from launchgrid.library.changes import ChangeFlags, FileChangeEvent
from launchgrid.library.manager import LayoutManager
from launchgrid.library.workers import incremental_worker
from launchgrid.settings.manager import SettingsManager


@pytest.fixture
def env(tmp_path: Path, qapp, bundle_factory):
    system = tmp_path / "System"
    for name in ("Calendar", "Books", "Dictionary", "Atlas"):
        bundle_factory(system, name)
    settings = SettingsManager(path=tmp_path / "settings.json")
    settings.load()
    settings.set("grid", {"columns": 3, "rows": 3})
    pool = ConnectionPool(tmp_path / "layout.db")
    repository = SQLiteLayoutRepository(pool)

    managers = []

    def make_manager() -> LayoutManager:
        manager = LayoutManager(settings, repository, system_dirs=[str(system)])
        managers.append(manager)
        return manager

    yield system, make_manager
    for manager in managers:
        manager.shutdown()
    pool.close_all()


def names(manager: LayoutManager) -> list:
    return [item.app.name if isinstance(item, AppItem) else item_kind(item) for item in manager.items]


def path_of(manager: LayoutManager, name: str) -> str:
    return next(app.path for app in manager.apps if app.name == name)


def test_first_scan_sorts_by_name_and_pads_pages(env):
    _system, make_manager = env
    manager = make_manager()
    completed = []
    manager.event_bus.subscribe(ScanCompletedEvent, completed.append)
    spy = QSignalSpy(manager.itemsChanged)

    manager.scan_applications(blocking=True)

    assert names(manager)[:4] == ["Atlas", "Books", "Calendar", "Dictionary"]
    assert len(manager.items) == 9
    assert manager.page_count == 1
    assert spy.count() >= 1
    assert completed[-1].app_count == 4


def test_rescan_without_changes_keeps_layout(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.move_item(0, 3)
    before = manager.items

    manager.scan_applications(blocking=True)
    assert manager.items == before


def test_new_app_is_appended_after_existing_items(env, bundle_factory):
    system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.move_item(3, 0)
    order = names(manager)[:4]

    bundle_factory(system, "Aardvark")
    manager.scan_applications(blocking=True)
    assert names(manager)[:5] == order + ["Aardvark"]


def test_stale_scan_results_are_ignored(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.scan_applications(blocking=True)
    before = manager.items
    manager._on_scan_finished([], True, 1)
    assert manager.items == before


def test_reset_layout_rebuilds_in_name_order(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.move_item(0, 3)
    manager.reset_layout(blocking=True)
    assert names(manager)[:4] == ["Atlas", "Books", "Calendar", "Dictionary"]


def test_layout_survives_restart(env):
    _system, make_manager = env
    first = make_manager()
    first.scan_applications(blocking=True)
    folder = first.create_folder([path_of(first, "Books"), path_of(first, "Atlas")], name="Reading")
    first.move_item(1, 2)
    assert first.save_now()
    snapshot = [(item_kind(item), item_path(item)) for item in first.items]

    second = make_manager()
    assert second.load_layout()
    assert [(item_kind(item), item_path(item)) for item in second.items] == snapshot
    restored = second.folder(folder.id)
    assert restored.name == "Reading"
    assert restored.member_paths() == folder.member_paths()

    loaded = second.items
    second.scan_applications(blocking=True)
    assert second.items == loaded


def test_folder_on_unmounted_source_survives_restart(env, tmp_path: Path, bundle_factory):
    _system, make_manager = env
    external = tmp_path / "External"
    bundle_factory(external, "PortA")
    bundle_factory(external, "PortB")
    first = make_manager()
    first.scan_applications(blocking=True)
    first.add_custom_source(str(external), blocking=True)
    folder = first.create_folder([path_of(first, "PortA"), path_of(first, "PortB")], name="Portable")
    assert first.save_now()

    away = tmp_path / "Away"
    shutil.move(str(external), str(away))
    second = make_manager()
    assert second.load_layout()
    second.save_now()

    third = make_manager()
    assert third.load_layout()
    restored = third.folder(folder.id)
    assert restored is not None
    assert restored.member_paths() == folder.member_paths()
    assert [app.name for app in restored.apps] == ["PortA", "PortB"]

    shutil.move(str(away), str(external))
    third.scan_applications(blocking=True)
    assert third.folder(folder.id).member_paths() == folder.member_paths()
    assert sum(isinstance(item, FolderItem) for item in third.items) == 1
    assert "PortA" not in names(third)


def test_folder_operations(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    atlas, books, calendar = (path_of(manager, name) for name in ("Atlas", "Books", "Calendar"))

    folder = manager.create_folder([atlas, books])
    assert isinstance(manager.items[0], FolderItem)
    manager.add_app_to_folder(folder.id, calendar)
    assert folder.member_paths() == [atlas, books, calendar]
    manager.rename_folder(folder.id, "Stuff")
    assert manager.folder(folder.id).name == "Stuff"

    manager.remove_app_from_folder(folder.id, books)
    assert books in [item_path(item) for item in manager.items]
    assert [app.path for app in manager.apps if app.path == books] == [books]


def test_hide_and_unhide(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    books = path_of(manager, "Books")

    assert manager.hide_app(books)
    assert not manager.hide_app(books)
    assert "Books" not in names(manager)
    assert books not in [app.path for app in manager.apps]

    manager.scan_applications(blocking=True)
    assert "Books" not in names(manager)

    assert manager.unhide_app(books)
    assert "Books" in names(manager)
    assert not manager.unhide_app(books)


def test_custom_titles(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    atlas = path_of(manager, "Atlas")
    manager.set_custom_title(atlas, "World")
    assert "World" in names(manager)
    manager.scan_applications(blocking=True)
    assert "World" in names(manager)
    manager.clear_custom_title(atlas)
    assert "Atlas" in names(manager)


def test_custom_source_placeholders_and_purge(env, tmp_path: Path, bundle_factory):
    _system, make_manager = env
    external = tmp_path / "External"
    bundle = bundle_factory(external, "Portable")
    manager = make_manager()
    placeholder_events = []
    manager.event_bus.subscribe(PlaceholdersChangedEvent, placeholder_events.append)
    manager.scan_applications(blocking=True)

    with pytest.raises(SourceError):
        manager.add_custom_source(str(tmp_path / "nope"))
    assert manager.add_custom_source(str(external), blocking=True)
    assert not manager.add_custom_source(str(external), blocking=True)
    assert "Portable" in names(manager)
    portable = path_of(manager, "Portable")

    shutil.rmtree(bundle)
    manager.scan_applications(blocking=True)
    placeholders = [item for item in manager.items if isinstance(item, PlaceholderItem)]
    assert [item.placeholder.path for item in placeholders] == [portable]
    assert placeholders[0].placeholder.display_name == "Portable"
    assert list(manager.placeholders) == [portable]
    assert placeholder_events[-1].paths == (portable,)

    assert manager.remove_custom_source(str(external), blocking=True)
    assert not any(isinstance(item, PlaceholderItem) for item in manager.items)
    assert manager.placeholders == {}
    assert manager.custom_sources() == []


def test_missing_system_app_is_dropped(env):
    system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    shutil.rmtree(system / "Books.app")
    manager.scan_applications(blocking=True)
    assert "Books" not in names(manager)
    assert not any(isinstance(item, PlaceholderItem) for item in manager.items)


def test_incremental_changes(env, bundle_factory):
    system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)

    fresh = bundle_factory(system, "Zebra")
    manager.handle_file_events([FileChangeEvent(str(fresh / "Contents" / "Info.plist"), ChangeFlags.CREATED)])
    manager.process_pending_changes(blocking=True)
    assert names(manager)[4] == "Zebra"

    shutil.rmtree(fresh)
    manager.handle_file_events([FileChangeEvent(str(fresh), ChangeFlags.REMOVED | ChangeFlags.IS_DIR)])
    manager.process_pending_changes(blocking=True)
    assert "Zebra" not in names(manager)


def test_structural_event_triggers_full_scan(env, bundle_factory):
    system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    bundle_factory(system / "Games", "Chess")
    manager.handle_file_events([FileChangeEvent(str(system / "Games"), ChangeFlags.CREATED | ChangeFlags.IS_DIR)])
    manager.process_pending_changes(blocking=True)
    assert "Chess" in names(manager)


def test_volume_events_only_for_source_volumes(env, tmp_path: Path):
    _system, make_manager = env
    external = tmp_path / "Volume" / "Apps"
    external.mkdir(parents=True)
    manager = make_manager()
    manager.add_custom_source(str(external), rescan=False)
    assert manager.handle_volume_event(str(tmp_path / "Volume"), mounted=True)
    assert manager._volume_rescan_call.is_pending()
    assert not manager.handle_volume_event(str(tmp_path / "Elsewhere"), mounted=False)


def test_drag_page_is_provisional(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    assert manager.page_count == 1

    page = manager.create_new_page_for_drag()
    assert page == 1
    assert manager.page_count == 2
    manager.cancel_drag()
    assert manager.page_count == 1

    manager.create_new_page_for_drag()
    manager.move_item(0, 9)
    manager.cleanup_unused_drag_page()
    assert manager.page_count == 2
    assert isinstance(manager.items[9], AppItem)


def test_save_skips_only_the_scratch_drag_page(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.create_new_page_for_drag()
    assert manager.save_now()
    reloaded = make_manager()
    reloaded.load_layout()
    assert len(reloaded.items) == 9

    # Empty every slot of the first page onto the drag page.
    for _ in range(4):
        manager.move_item(0, 9)
    assert manager.page_count == 2
    assert all(item_kind(item) == "empty" for item in manager.items[:9])
    assert manager.save_now()

    second = make_manager()
    second.load_layout()
    assert len(second.items) == 18
    assert all(item_kind(item) == "empty" for item in second.items[:9])
    assert sum(isinstance(item, AppItem) for item in second.items[9:]) == 4


def test_grid_geometry_and_pages(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    pages = QSignalSpy(manager.currentPageChanged)

    manager.set_grid_geometry(1, 1)
    assert (manager.columns, manager.rows) == (3, 3)
    manager.set_grid_geometry(20, 4)
    assert (manager.columns, manager.rows) == (10, 4)
    assert manager.page_capacity == 40
    assert manager.page_count == 1

    manager.set_current_page(5)
    assert manager.current_page == 0
    assert pages.count() == 0


def test_remember_last_page(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    manager.create_new_page_for_drag()
    manager.move_item(0, 9)
    manager.cleanup_unused_drag_page()
    manager.set_remember_last_page(True)
    manager.set_current_page(1)
    manager.save_now()

    second = make_manager()
    second.load_layout()
    assert second.current_page == 1


def test_export_and_import(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    payload = manager.export_layout()
    payload["pages"][0], payload["pages"][1] = (
        dict(payload["pages"][1], position=0),
        dict(payload["pages"][0], position=1),
    )
    layout_events = []
    manager.event_bus.subscribe(LayoutChangedEvent, layout_events.append)

    result = manager.import_layout(payload)
    assert result.ok
    assert names(manager)[:2] == ["Books", "Atlas"]
    assert layout_events[-1].reason == "import"

    before = manager.items
    rejected = manager.import_layout({"pages": [{"pageIndex": 0}]})
    assert not rejected.ok
    assert manager.items == before


def test_worker_failures_go_through_error_handler(env, monkeypatch, bundle_factory):
    system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    reported = []
    manager.event_bus.subscribe(ErrorOccurredEvent, reported.append)
    errors = QSignalSpy(manager.errorRaised)
    finished = QSignalSpy(manager.scanFinished)

    def broken_scan(self, roots, parallel=True):
        raise OSError("volume vanished")

    def broken_classify(*args, **kwargs):
        raise OSError("plist unreadable")

    monkeypatch.setattr(ApplicationScanner, "scan", broken_scan)
    monkeypatch.setattr(incremental_worker, "classify_changes", broken_classify)
    before = manager.items

    manager.scan_applications(blocking=True)
    fresh = bundle_factory(system / "Games", "Chess")
    manager.handle_file_events([FileChangeEvent(str(fresh / "Contents" / "Info.plist"), ChangeFlags.CREATED)])
    manager.process_pending_changes(blocking=True)

    assert [type(event.error) for event in reported] == [ScanError, ScanError]
    assert [event.context["operation"] for event in reported] == ["scan", "incremental"]
    assert str(reported[0].error) == "volume vanished"
    assert errors.count() == 2
    assert finished.at(finished.count() - 1) == [False]
    assert manager.items == before


def test_database_failure_is_reported(env):
    _system, make_manager = env
    manager = make_manager()
    manager.scan_applications(blocking=True)
    errors = QSignalSpy(manager.errorRaised)
    with manager._persistence._repository._pool.connection() as conn:
        conn.execute("DROP TABLE page_entries")
    assert not manager.save_now()
    assert errors.count() == 1
