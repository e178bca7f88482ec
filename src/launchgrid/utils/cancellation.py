"""Cancellation tokens and superseding delayed calls."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer


class CancellationToken:
    """Flag shared between a scheduled unit of work and its scheduler."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ScheduledCall(QObject):
    """Run a callback once after a delay; scheduling again supersedes.

    Every call to :meth:`schedule` cancels the token of the pending call
    before arming a new one, so only the most recent request ever fires.
    """

    def __init__(self, callback: Callable[[], None], parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._callback = callback
        self._token: Optional[CancellationToken] = None

    def schedule(self, delay_ms: int) -> CancellationToken:
        self.cancel()
        token = CancellationToken()
        self._token = token
        QTimer.singleShot(delay_ms, self, lambda: self._fire(token))
        return token

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def is_pending(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def _fire(self, token: CancellationToken) -> None:
        if token.cancelled or token is not self._token:
            return
        self._token = None
        self._callback()


__all__ = ["CancellationToken", "ScheduledCall"]
