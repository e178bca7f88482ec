import logging
import time
from dataclasses import dataclass
from unittest.mock import Mock

from launchgrid.errors import DatabaseError, DomainError, InfrastructureError, LaunchGridError, ScanError
from launchgrid.errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from launchgrid.events.bus import Event, EventBus
from launchgrid.events.layout_events import LayoutChangedEvent


@dataclass(kw_only=True)
class SimpleEvent(Event):
    payload: str = ""


def test_sync_subscribe_publish():
    bus = EventBus()
    received = []
    bus.subscribe(SimpleEvent, lambda event: received.append(event.payload))
    bus.publish(SimpleEvent(payload="hello"))
    assert received == ["hello"]


def test_async_subscribe_publish():
    bus = EventBus()
    received = []

    def handler(event: SimpleEvent):
        time.sleep(0.05)
        received.append(event.payload)

    bus.subscribe(SimpleEvent, handler, async_=True)
    bus.publish(SimpleEvent(payload="world"))
    bus.shutdown()
    assert received == ["world"]


def test_unsubscribe_and_type_isolation():
    bus = EventBus()
    received = []
    sub = bus.subscribe(SimpleEvent, received.append)
    bus.publish(LayoutChangedEvent(reason="scan", item_count=1, page_count=1))
    assert received == []
    bus.unsubscribe(sub)
    bus.publish(SimpleEvent())
    assert received == []


def test_failing_handler_does_not_stop_others(caplog):
    bus = EventBus(logging.getLogger("test.bus"))
    received = []

    def broken(event):
        raise ValueError("boom")

    bus.subscribe(SimpleEvent, broken)
    bus.subscribe(SimpleEvent, lambda event: received.append(event))
    with caplog.at_level(logging.ERROR, logger="test.bus"):
        bus.publish(SimpleEvent())
    assert len(received) == 1
    assert "boom" in caplog.text


def test_publish_async_returns_futures():
    bus = EventBus()
    futures = bus.publish_async(SimpleEvent())
    assert futures == []
    bus.subscribe(SimpleEvent, lambda event: None)
    futures = bus.publish_async(SimpleEvent())
    assert [future.result(timeout=1) for future in futures] == [None]
    bus.shutdown()


def test_error_hierarchy():
    assert issubclass(DatabaseError, InfrastructureError)
    assert issubclass(ScanError, LaunchGridError)
    assert issubclass(DomainError, LaunchGridError)


def test_error_handler_logs_publishes_and_notifies(caplog):
    bus = EventBus()
    events = []
    bus.subscribe(ErrorOccurredEvent, events.append)
    handler = ErrorHandler(logging.getLogger("test.errors"), bus)
    callback = Mock()
    handler.register_ui_callback(callback)

    with caplog.at_level(logging.WARNING, logger="test.errors"):
        handler.handle(DatabaseError("disk full"), ErrorSeverity.ERROR, {"operation": "save"})
        handler.handle(ScanError("slow volume"), ErrorSeverity.WARNING)

    assert [event.severity for event in events] == [ErrorSeverity.ERROR, ErrorSeverity.WARNING]
    assert events[0].context == {"operation": "save"}
    callback.assert_called_once_with("disk full", ErrorSeverity.ERROR)
    assert "disk full" in caplog.text
    assert "slow volume" in caplog.text
