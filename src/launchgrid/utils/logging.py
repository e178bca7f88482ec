"""Package-wide logger configuration."""

from __future__ import annotations

import logging
import os

_LOGGER_NAME = "launchgrid"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def _configure(logger: logging.Logger) -> None:
    global _configured
    if _configured:
        return
    level_name = os.environ.get("LAUNCHGRID_LOG_LEVEL", "WARNING").upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the shared ``launchgrid`` logger, or a named child of it."""

    root = logging.getLogger(_LOGGER_NAME)
    _configure(root)
    if name and name != _LOGGER_NAME:
        return root.getChild(name)
    return root


__all__ = ["get_logger"]
