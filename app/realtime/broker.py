"""
Change Broker

In-process publish/subscribe of row changes. Route handlers publish a
ChangeEvent after each committed insert, update or delete; listeners are
the WebSocket endpoint (one queue per connected dashboard) and in-process
relays.

Listeners must treat the payload as a hint: the contract is "something in
this table changed, refetch", not a structural patch.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """A committed change to one row of ``table``."""
    table: str
    event_type: ChangeType
    new: dict[str, Any] = field(default_factory=dict)
    old: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "eventType": self.event_type.value,
            "new": self.new,
            "old": self.old,
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeEvent":
        return cls(
            table=data["table"],
            event_type=ChangeType(data["eventType"]),
            new=data.get("new") or {},
            old=data.get("old") or {},
        )


Listener = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ``subscribe``; ``close()`` is idempotent."""

    def __init__(self, broker: "ChangeBroker", table: str, listener: Listener):
        self._broker = broker
        self.table = table
        self.listener = listener
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self._broker._remove(self)
        self.closed = True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeBroker:
    """Fan-out of change events per table."""

    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, listener: Listener) -> Subscription:
        subscription = Subscription(self, table, listener)
        with self._lock:
            self._subscriptions[table].append(subscription)
        logger.debug(f"Subscribed to {table} ({self.subscriber_count(table)} listeners)")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._subscriptions.get(subscription.table, [])
            if subscription in listeners:
                listeners.remove(subscription)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(table, []))

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver ``event`` to every listener of its table.

        A failing listener is logged and skipped so that one broken dashboard
        cannot stop delivery to the others. Returns the number of listeners
        that received the event.
        """
        with self._lock:
            listeners = list(self._subscriptions.get(event.table, []))

        delivered = 0
        for subscription in listeners:
            try:
                subscription.listener(event)
                delivered += 1
            except Exception:
                logger.exception(f"Listener failed for {event.event_type.value} on {event.table}")

        logger.debug(f"Published {event.event_type.value} on {event.table} to {delivered} listeners")
        return delivered

    def open_queue(
        self,
        table: str,
        maxsize: int = 100,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> tuple[Subscription, "asyncio.Queue[ChangeEvent]"]:
        """
        Subscribe an asyncio queue, for consumers living on an event loop.

        Events are handed to the loop thread-safely. When the consumer falls
        behind and the queue is full, the event is dropped: the next event
        triggers a refetch anyway.
        """
        loop = loop or asyncio.get_running_loop()
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=maxsize)

        def offer(event: ChangeEvent) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event.event_type.value} on {table}: consumer is behind")

        def listener(event: ChangeEvent) -> None:
            loop.call_soon_threadsafe(offer, event)

        return self.subscribe(table, listener), queue


_broker = ChangeBroker()


def get_broker() -> ChangeBroker:
    """Process-wide broker shared by routes and WebSocket endpoints."""
    return _broker
