"""Typed publish/subscribe bus used to fan out layout notifications."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base class for everything published on the bus."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    async_: bool = False
    active: bool = True

    def cancel(self) -> None:
        self.active = False


class EventBus:
    """Dispatch events to handlers registered for their exact type.

    Synchronous handlers run on the publishing thread, which for layout
    events is always the coordinator. Asynchronous handlers are handed to a
    small thread pool created on first use.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_workers: int = 2):
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], handler: Callable, async_: bool = False) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler, async_=async_)
        with self._lock:
            self._handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        with self._lock:
            subs = self._handlers.get(subscription.event_type, [])
            if subscription in subs:
                subs.remove(subscription)

    def publish(self, event: Event) -> None:
        event_type = type(event)
        with self._lock:
            subs = [sub for sub in self._handlers.get(event_type, []) if sub.active]

        for sub in subs:
            if sub.async_:
                self._pool().submit(self._safe_call, sub.handler, event)
                continue
            self._safe_call(sub.handler, event)

    def publish_async(self, event: Event) -> List[Future]:
        """Run every handler for *event* on the pool and return the futures."""
        event_type = type(event)
        with self._lock:
            subs = [sub for sub in self._handlers.get(event_type, []) if sub.active]
        return [self._pool().submit(self._safe_call, sub.handler, event) for sub in subs]

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="launchgrid-events"
                )
            return self._executor

    def _safe_call(self, handler: Callable, event: Event) -> None:
        try:
            handler(event)
        except Exception as exc:
            self._logger.error("Handler failed for %s: %s", type(event).__name__, exc)

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
