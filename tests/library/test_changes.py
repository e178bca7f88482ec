import os
from pathlib import Path

from launchgrid.io.metadata import BundleMetadataResolver
from launchgrid.library.changes import (
    ChangeAccumulator,
    ChangeFlags,
    ChangeKind,
    FileChangeEvent,
    classify_changes,
)

ROOT = "/Volumes/Apps"


def test_bundle_events_collapse_to_bundle_path():
    accumulator = ChangeAccumulator()
    accumulator.record(
        [
            FileChangeEvent(f"{ROOT}/Tool.app/Contents/Info.plist"),
            FileChangeEvent(f"{ROOT}/Tool.app/Contents/MacOS/tool", ChangeFlags.CREATED),
            FileChangeEvent(f"{ROOT}/Games/Other.app", ChangeFlags.CREATED | ChangeFlags.IS_DIR),
        ],
        [ROOT],
    )
    batch = accumulator.drain()
    assert not batch.full_scan
    assert batch.paths == {f"{ROOT}/Tool.app", f"{ROOT}/Games/Other.app"}
    assert not accumulator.pending


def test_structural_directory_event_under_root_forces_full_scan():
    accumulator = ChangeAccumulator()
    accumulator.record([FileChangeEvent(f"{ROOT}/Games", ChangeFlags.CREATED | ChangeFlags.IS_DIR)], [ROOT])
    assert accumulator.force_full
    batch = accumulator.drain()
    assert batch.full_scan
    assert batch.paths == frozenset()


def test_bundle_created_directly_under_root_forces_full_scan():
    accumulator = ChangeAccumulator()
    accumulator.record([FileChangeEvent(f"{ROOT}/New.app", ChangeFlags.CREATED | ChangeFlags.IS_DIR)], [ROOT])
    batch = accumulator.drain()
    assert batch.full_scan
    assert batch.paths == frozenset()


def test_deep_directory_and_plain_file_events_are_ignored():
    accumulator = ChangeAccumulator()
    accumulator.record(
        [
            FileChangeEvent(f"{ROOT}/Games/Arcade", ChangeFlags.CREATED | ChangeFlags.IS_DIR),
            FileChangeEvent(f"{ROOT}/notes.txt", ChangeFlags.MODIFIED),
            FileChangeEvent(f"{ROOT}/Games", ChangeFlags.MODIFIED | ChangeFlags.IS_DIR),
        ],
        [ROOT],
    )
    assert not accumulator.pending


def test_root_removal_forces_full_scan():
    accumulator = ChangeAccumulator()
    accumulator.record([FileChangeEvent(ROOT, ChangeFlags.REMOVED | ChangeFlags.IS_DIR)], [ROOT])
    assert accumulator.drain().full_scan


def test_burst_over_threshold_becomes_full_scan():
    accumulator = ChangeAccumulator(threshold=3)
    accumulator.record([FileChangeEvent(f"{ROOT}/App{index}.app") for index in range(4)], [ROOT])
    assert accumulator.drain().full_scan

    accumulator.record([FileChangeEvent(f"{ROOT}/App{index}.app") for index in range(3)], [ROOT])
    batch = accumulator.drain()
    assert not batch.full_scan
    assert len(batch.paths) == 3


def test_classify_changes(tmp_path: Path, bundle_factory):
    root = tmp_path / "Apps"
    kept = os.path.realpath(bundle_factory(root, "Kept"))
    fresh = os.path.realpath(bundle_factory(root, "Fresh", display_name="Brand New"))
    gone = os.path.join(os.path.realpath(root), "Gone.app")
    stranger = os.path.join(os.path.realpath(root), "Stranger.app")

    changes = classify_changes(
        [kept, fresh, gone, stranger],
        known_paths=[kept, gone],
        resolver=BundleMetadataResolver(),
        roots=[os.path.realpath(root)],
    )
    by_path = {change.path: change for change in changes}
    assert by_path[kept].kind is ChangeKind.UPDATE
    assert by_path[fresh].kind is ChangeKind.INSERT
    assert by_path[fresh].record.name == "Brand New"
    assert by_path[fresh].record.source_dir == os.path.realpath(root)
    assert by_path[gone].kind is ChangeKind.REMOVE
    assert by_path[gone].record is None
    assert stranger not in by_path
