"""Background worker that enumerates application bundles."""

from __future__ import annotations

from typing import Sequence

from PySide6.QtCore import QObject, QRunnable, Signal

from ...io.scanner import ApplicationScanner
from ...utils.logging import get_logger

LOGGER = get_logger()


class ScannerSignals(QObject):
    """Signals emitted by :class:`ScannerWorker`."""

    # (records, preserve_order, sequence)
    finished = Signal(list, bool, int)
    error = Signal(str)


class ScannerWorker(QRunnable):
    """Walk the search directories off the coordinator thread."""

    def __init__(
        self,
        scanner: ApplicationScanner,
        roots: Sequence[str],
        preserve_order: bool,
        signals: ScannerSignals,
        sequence: int = 0,
    ) -> None:
        super().__init__()
        self.setAutoDelete(False)
        self._scanner = scanner
        self._roots = list(roots)
        self._preserve_order = preserve_order
        self._signals = signals
        self._sequence = sequence
        self._had_error = False

    @property
    def signals(self) -> ScannerSignals:
        return self._signals

    @property
    def sequence(self) -> int:
        """Order in which the coordinator scheduled this scan."""

        return self._sequence

    @property
    def failed(self) -> bool:
        return self._had_error

    def run(self) -> None:
        """Scan every root and deliver the merged, name-sorted records."""

        records: list = []
        try:
            records = self._scanner.scan(self._roots, parallel=True)
        except Exception as exc:
            LOGGER.error("Application scan failed: %s", exc)
            self._had_error = True
            self._signals.error.emit(str(exc))
        finally:
            if not self._had_error:
                self._signals.finished.emit(records, self._preserve_order, self._sequence)
