import os
import plistlib
from pathlib import Path

from launchgrid.io.metadata import BundleMetadataResolver


def test_display_name_preferred_over_bundle_name(tmp_path: Path, bundle_factory):
    bundle = bundle_factory(tmp_path, "Calc", display_name="Calculator")
    name, icon = BundleMetadataResolver().resolve(str(bundle))
    assert name == "Calculator"
    assert icon is None


def test_missing_plist_falls_back_to_stem(tmp_path: Path):
    bundle = tmp_path / "Plain Tool.app"
    bundle.mkdir()
    name, _icon = BundleMetadataResolver().resolve(str(bundle))
    assert name == "Plain Tool"


def test_corrupt_plist_falls_back_to_stem(tmp_path: Path):
    bundle = tmp_path / "Broken.app"
    (bundle / "Contents").mkdir(parents=True)
    (bundle / "Contents" / "Info.plist").write_bytes(b"not a plist")
    name, _icon = BundleMetadataResolver().resolve(str(bundle))
    assert name == "Broken"


def test_icon_resolved_with_extension(tmp_path: Path):
    bundle = tmp_path / "Paint.app"
    resources = bundle / "Contents" / "Resources"
    resources.mkdir(parents=True)
    (resources / "AppIcon.icns").write_bytes(b"icns")
    with open(bundle / "Contents" / "Info.plist", "wb") as handle:
        plistlib.dump({"CFBundleName": "Paint", "CFBundleIconFile": "AppIcon"}, handle)
    _name, icon = BundleMetadataResolver().resolve(str(bundle))
    assert icon == os.path.join(str(resources), "AppIcon.icns")


def test_record_for_applies_custom_title(tmp_path: Path, bundle_factory):
    bundle = bundle_factory(tmp_path, "Notes")
    resolver = BundleMetadataResolver()
    record = resolver.record_for(str(bundle), str(tmp_path), {str(bundle): "  Jottings "})
    assert record.name == "Jottings"
    assert record.source_dir == str(tmp_path)
    assert resolver.record_for(str(bundle), None, {str(bundle): "   "}).name == "Notes"
