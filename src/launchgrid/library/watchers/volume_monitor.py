"""Mount/unmount notifications derived from ``QStorageInfo``."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Set

from PySide6.QtCore import QObject, QStorageInfo, QTimer, Signal

from ...config import VOLUME_POLL_INTERVAL_MS
from ...utils.logging import get_logger

LOGGER = get_logger()


def mounted_roots() -> Set[str]:
    return {
        volume.rootPath()
        for volume in QStorageInfo.mountedVolumes()
        if volume.isValid() and volume.isReady()
    }


class VolumeMonitor(QObject):
    """Poll the mounted volume list and report differences."""

    volumeMounted = Signal(str)
    volumeUnmounted = Signal(str)

    def __init__(
        self,
        parent: QObject | None = None,
        interval_ms: int = VOLUME_POLL_INTERVAL_MS,
        source: Optional[Callable[[], Iterable[str]]] = None,
    ) -> None:
        super().__init__(parent)
        self._source = source or mounted_roots
        self._known: Set[str] = set()
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.poll)

    def start(self) -> None:
        self._known = set(self._source())
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def is_active(self) -> bool:
        return self._timer.isActive()

    def poll(self) -> None:
        current = set(self._source())
        for root in sorted(current - self._known):
            LOGGER.info("Volume mounted: %s", root)
            self.volumeMounted.emit(root)
        for root in sorted(self._known - current):
            LOGGER.info("Volume unmounted: %s", root)
            self.volumeUnmounted.emit(root)
        self._known = current


__all__ = ["VolumeMonitor", "mounted_roots"]
