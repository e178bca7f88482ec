import json
from datetime import datetime

import pytest

from launchgrid.domain.models import AppItem, AppRecord, EmptySlot, Folder, FolderItem, Placeholder, PlaceholderItem, is_empty
from launchgrid.errors import ImportValidationError
from launchgrid.library.transfer import export_layout, export_layout_json, parse_import, plan_import, validate_import


def record(name: str) -> AppRecord:
    return AppRecord(path=f"/Applications/{name}.app", name=name)


@pytest.fixture
def layout():
    apps = [record(name) for name in ("Mail", "Maps", "Notes", "Music")]
    folder = Folder(name="Travel", apps=[apps[1], apps[2]])
    missing = Placeholder(path="/Volumes/X/Gone.app", display_name="Gone", removable_source="/Volumes/X")
    items = [AppItem(apps[0]), FolderItem(folder), PlaceholderItem(missing), EmptySlot(), AppItem(apps[3])]
    return apps, folder, items


def test_export_describes_every_slot(layout):
    _apps, folder, items = layout
    payload = export_layout(items, 4, now=datetime(2024, 5, 6, 7, 8, 9))
    assert payload["exportDate"] == "2024-05-06T07:08:09"
    assert payload["totalPages"] == 2
    assert payload["totalItems"] == 5
    kinds = [(entry["pageIndex"], entry["position"], entry["kind"]) for entry in payload["pages"]]
    assert kinds == [(0, 0, "app"), (0, 1, "folder"), (0, 2, "missing"), (0, 3, "empty"), (1, 0, "app")]
    assert payload["pages"][1]["folderApps"] == ["Maps", "Notes"]
    assert payload["pages"][1]["folderAppPaths"] == folder.member_paths()
    assert payload["pages"][2]["path"] == "/Volumes/X/Gone.app"
    assert validate_import(payload).ok


def test_export_json_is_parseable(layout):
    _apps, _folder, items = layout
    assert parse_import(export_layout_json(items, 4))["totalItems"] == 5


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {},
        {"pages": [{"pageIndex": -1, "position": 0, "kind": "empty"}]},
        {"pages": [{"pageIndex": 0, "position": 0, "kind": "app"}]},
        {"pages": [
            {"pageIndex": 0, "position": 0, "kind": "empty"},
            {"pageIndex": 0, "position": 0, "kind": "empty"},
        ]},
    ],
)
def test_validate_rejects_malformed_documents(payload):
    result = validate_import(payload)
    assert not result.ok
    assert result.reason


def test_parse_import_raises_on_bad_json():
    with pytest.raises(ImportValidationError):
        parse_import("{not json")
    with pytest.raises(ImportValidationError):
        parse_import(json.dumps({"pages": "nope"}))


def test_plan_import_maps_paths_and_appends_leftovers(layout):
    apps, folder, items = layout
    extra = record("Photos")
    payload = export_layout(items, 4)
    plan = plan_import(payload, apps + [extra], {folder.id: folder}, 4)

    assert plan.items[0] == AppItem(apps[0])
    assert plan.items[1].folder is folder
    # The placeholder's bundle is not installed.
    assert is_empty(plan.items[2])
    assert plan.unmatched_paths == ["/Volumes/X/Gone.app"]
    assert plan.items[4] == AppItem(apps[3])
    assert plan.appended == 1
    assert plan.items[8] == AppItem(extra)
    assert len(plan.items) % 4 == 0


def test_plan_import_respects_positions_and_builds_new_folders():
    apps = [record("A"), record("B"), record("C")]
    payload = {
        "pages": [
            {"pageIndex": 1, "position": 1, "kind": "app", "path": apps[0].path},
            {"pageIndex": 0, "position": 2, "kind": "folder", "name": "Duo",
             "folderAppPaths": [apps[1].path, apps[2].path, apps[0].path]},
        ]
    }
    plan = plan_import(payload, apps, {}, 3)
    assert is_empty(plan.items[0]) and is_empty(plan.items[1])
    new_folder = plan.items[2].folder
    assert new_folder.name == "Duo"
    # A path may only be used once.
    assert new_folder.member_paths() == [apps[1].path, apps[2].path, apps[0].path]
    assert plan.folders == {new_folder.id: new_folder}
    assert is_empty(plan.items[4])
    assert plan.unmatched_paths == [apps[0].path]


def test_plan_import_rejects_invalid_payload():
    with pytest.raises(ImportValidationError):
        plan_import({"pages": [{"kind": "app"}]}, [], {}, 4)


def test_unknown_kinds_become_empty_slots():
    apps = [record("A")]
    payload = {
        "pages": [
            {"pageIndex": 0, "position": 0, "kind": "app", "path": apps[0].path},
            {"pageIndex": 0, "position": 1, "kind": "widget"},
        ]
    }
    assert validate_import(payload).ok
    plan = plan_import(payload, apps, {}, 3)
    assert plan.items[0] == AppItem(apps[0])
    assert is_empty(plan.items[1])
    assert len(plan.items) == 2


def test_folders_without_paths_match_member_names():
    apps = [record("A"), record("B"), record("C")]
    payload = {
        "pages": [
            {"pageIndex": 0, "position": 0, "kind": "folder", "name": "Pair", "folderApps": ["B", "A"]},
            {"pageIndex": 0, "position": 1, "kind": "folder", "name": "Ghosts", "folderApps": ["Nobody"]},
            {"pageIndex": 0, "position": 2, "kind": "folder", "name": "Bare"},
        ]
    }
    assert validate_import(payload).ok
    plan = plan_import(payload, apps, {}, 3)
    assert plan.items[0].folder.member_paths() == [apps[1].path, apps[0].path]
    assert is_empty(plan.items[1])
    assert is_empty(plan.items[2])
    assert plan.items[3] == AppItem(apps[2])
    assert len(plan.folders) == 1
