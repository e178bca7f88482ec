"""Events describing layout, scan and settings changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .bus import Event


@dataclass(kw_only=True)
class LayoutChangedEvent(Event):
    reason: str
    item_count: int
    page_count: int


@dataclass(kw_only=True)
class ScanCompletedEvent(Event):
    full: bool
    app_count: int
    added: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()


@dataclass(kw_only=True)
class PlaceholdersChangedEvent(Event):
    """Published whenever the set of tracked missing paths changes."""
    paths: tuple[str, ...] = field(default_factory=tuple)


@dataclass(kw_only=True)
class SettingChangedEvent(Event):
    key: str
    value: Any = None
