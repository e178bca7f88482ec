"""Global configuration constants for launchgrid."""

from __future__ import annotations

from typing import Final

# Directory suffix identifying an application bundle.
APP_BUNDLE_SUFFIX: Final[str] = ".app"

# Directory suffixes treated as opaque packages: the scanner never descends
# into them.
PACKAGE_SUFFIXES: Final[frozenset[str]] = frozenset(
    {".app", ".appex", ".bundle", ".framework", ".plugin", ".kext", ".xpc"}
)

SYSTEM_APPLICATION_DIRS: Final[tuple[str, ...]] = (
    "/Applications",
    "~/Applications",
    "/System/Applications",
    "/System/Cryptexes/App/System/Applications",
)

# Grid geometry
DEFAULT_COLUMNS: Final[int] = 7
DEFAULT_ROWS: Final[int] = 5
MIN_COLUMNS: Final[int] = 3
MAX_COLUMNS: Final[int] = 10
MIN_ROWS: Final[int] = 3
MAX_ROWS: Final[int] = 8

DEFAULT_FOLDER_NAME: Final[str] = "Untitled"

# Change pipeline timings (milliseconds)
CHANGE_DEBOUNCE_MS: Final[int] = 200
FULL_RESCAN_THRESHOLD: Final[int] = 50
MOUNT_RESCAN_DELAY_MS: Final[int] = 1000
UNMOUNT_RESCAN_DELAY_MS: Final[int] = 200
VOLUME_POLL_INTERVAL_MS: Final[int] = 2000

SAVE_DEBOUNCE_MS: Final[int] = 500
DRAG_PAGE_CLEANUP_DELAY_MS: Final[int] = 500

# Storage
APP_DATA_DIR_NAME: Final[str] = "LaunchGrid"
LAYOUT_DB_NAME: Final[str] = "layout.db"
SETTINGS_FILE_NAME: Final[str] = "settings.json"
