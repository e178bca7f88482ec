import os
import plistlib
import sys
from pathlib import Path
from typing import Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Allow running the suite from a checkout without installing the package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
# Keep rich from wrapping CLI output at 80 columns under CliRunner.
os.environ.setdefault("COLUMNS", "200")


def make_bundle(parent: Path, name: str, display_name: Optional[str] = None) -> Path:
    """Create a minimal ``Name.app`` bundle under *parent* and return its path."""

    bundle = parent / f"{name}.app"
    contents = bundle / "Contents"
    contents.mkdir(parents=True, exist_ok=True)
    info = {"CFBundleName": name}
    if display_name:
        info["CFBundleDisplayName"] = display_name
    with open(contents / "Info.plist", "wb") as handle:
        plistlib.dump(info, handle)
    return bundle


@pytest.fixture
def bundle_factory():
    return make_bundle


@pytest.fixture(scope="session")
def qapp():
    QtCore = pytest.importorskip("PySide6.QtCore", reason="Qt core not available", exc_type=ImportError)
    app = QtCore.QCoreApplication.instance()
    if app is None:
        app = QtCore.QCoreApplication([])
    yield app
