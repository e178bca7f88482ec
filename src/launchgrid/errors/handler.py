"""Central error reporting: log, publish on the bus, notify the UI."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..events.bus import Event, EventBus


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    context: dict = field(default_factory=dict)


class ErrorHandler:
    """Funnel for failures that must not abort the coordinator."""

    def __init__(self, logger: logging.Logger, event_bus: EventBus):
        self._logger = logger
        self._events = event_bus
        self._ui_callback: Optional[Callable[[str, ErrorSeverity], None]] = None

    def register_ui_callback(self, callback: Callable[[str, ErrorSeverity], None]) -> None:
        self._ui_callback = callback

    def handle(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[dict] = None,
    ) -> None:
        details = dict(context or {})
        log_method = getattr(self._logger, severity.value, self._logger.error)
        if details:
            log_method("%s: %s (%s)", error.__class__.__name__, error, details)
        else:
            log_method("%s: %s", error.__class__.__name__, error)

        self._events.publish(
            ErrorOccurredEvent(error=error, severity=severity, context=details)
        )

        if self._ui_callback and severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._ui_callback(str(error), severity)


__all__ = ["ErrorHandler", "ErrorOccurredEvent", "ErrorSeverity"]
