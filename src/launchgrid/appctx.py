"""Application-wide context: settings, storage and the layout coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, TYPE_CHECKING

from .config import LAYOUT_DB_NAME, SETTINGS_FILE_NAME, SYSTEM_APPLICATION_DIRS
from .errors.handler import ErrorHandler
from .events.bus import EventBus
from .utils.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - only for type checking
    from .infrastructure.db.pool import ConnectionPool
    from .library.manager import LayoutManager
    from .settings.manager import SettingsManager

LOGGER = get_logger()


def _create_settings_manager(path: Optional[Path] = None) -> "SettingsManager":
    from .settings.manager import SettingsManager

    manager = SettingsManager(path)
    manager.load()
    return manager


@dataclass
class AppContext:
    """Objects shared by the CLI and any UI built on top of the coordinator."""

    data_dir: Optional[Path] = None
    system_dirs: Sequence[str] = SYSTEM_APPLICATION_DIRS
    event_bus: EventBus = field(default_factory=lambda: EventBus(LOGGER))
    settings: "SettingsManager" = field(init=False)
    pool: "ConnectionPool" = field(init=False)
    layout: "LayoutManager" = field(init=False)

    def __post_init__(self) -> None:
        from .infrastructure.db.pool import ConnectionPool
        from .infrastructure.repositories.sqlite_layout_repository import SQLiteLayoutRepository
        from .library.manager import LayoutManager
        from .settings.manager import app_data_dir

        base = self.data_dir or app_data_dir()
        settings_path = base / SETTINGS_FILE_NAME if self.data_dir else None
        self.settings = _create_settings_manager(settings_path)
        self.pool = ConnectionPool(base / LAYOUT_DB_NAME)
        self.layout = LayoutManager(
            self.settings,
            SQLiteLayoutRepository(self.pool),
            event_bus=self.event_bus,
            error_handler=ErrorHandler(LOGGER, self.event_bus),
            system_dirs=self.system_dirs,
        )

    def close(self) -> None:
        self.layout.shutdown()
        self.event_bus.shutdown()
        self.pool.close_all()
