from .bus import Event, EventBus, Subscription
from .layout_events import (
    LayoutChangedEvent,
    PlaceholdersChangedEvent,
    ScanCompletedEvent,
    SettingChangedEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "Subscription",
    "LayoutChangedEvent",
    "PlaceholdersChangedEvent",
    "ScanCompletedEvent",
    "SettingChangedEvent",
]
