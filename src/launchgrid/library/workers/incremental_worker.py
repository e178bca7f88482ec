"""Background worker classifying changed bundle paths."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from PySide6.QtCore import QObject, QRunnable, Signal

from ...io.metadata import MetadataResolver
from ...utils.logging import get_logger
from ..changes import classify_changes

LOGGER = get_logger()


class IncrementalSignals(QObject):
    """Signals emitted by :class:`IncrementalWorker`."""

    changesReady = Signal(list)
    error = Signal(str)


class IncrementalWorker(QRunnable):
    """Resolve metadata for a debounced batch of changed paths."""

    def __init__(
        self,
        paths: Iterable[str],
        known_paths: Iterable[str],
        resolver: MetadataResolver,
        roots: Sequence[str],
        signals: IncrementalSignals,
        custom_titles: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__()
        self.setAutoDelete(False)
        self._paths = sorted(set(paths))
        self._known = frozenset(known_paths)
        self._resolver = resolver
        self._roots = list(roots)
        self._custom_titles = dict(custom_titles or {})
        self._signals = signals

    @property
    def signals(self) -> IncrementalSignals:
        return self._signals

    def run(self) -> None:
        try:
            changes = classify_changes(
                self._paths, self._known, self._resolver, self._roots, self._custom_titles
            )
        except Exception as exc:
            LOGGER.error("Incremental classification failed: %s", exc)
            self._signals.error.emit(str(exc))
            return
        self._signals.changesReady.emit(changes)
