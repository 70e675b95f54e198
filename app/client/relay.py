"""
Change relays: bridge table change events to the client cache.

A relay lives as long as the screen that shows the data: ``mount()`` when
it opens, ``unmount()`` when it closes. Both are idempotent, and a relay
can be mounted again after unmounting.

The pushed row is never patched into the cache; the relay only marks the
query stale so the next read refetches.
"""

import logging
from typing import Any, Optional, Protocol

from app.client.cache import KeyLike, QueryCache, as_key
from app.client.notifications import ToastNotifier
from app.realtime import ChangeEvent, ChangeType

logger = logging.getLogger(__name__)


class ChangeSource(Protocol):
    def subscribe(self, table: str, listener: Any) -> Any: ...


class ChangeRelay:
    """Invalidate ``cache_key`` on every change to ``table``."""

    def __init__(
        self,
        source: ChangeSource,
        cache: QueryCache,
        table: str,
        cache_key: KeyLike,
    ):
        self.source = source
        self.cache = cache
        self.table = table
        self.cache_key = as_key(cache_key)
        self._subscription: Optional[Any] = None

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    def mount(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self.source.subscribe(self.table, self.handle)
        logger.debug(f"Relay mounted on {self.table}")

    def unmount(self) -> None:
        if self._subscription is None:
            return
        self._subscription.close()
        self._subscription = None
        logger.debug(f"Relay unmounted from {self.table}")

    def handle(self, event: ChangeEvent) -> None:
        self.cache.invalidate(self.cache_key)
        if event.event_type == ChangeType.INSERT:
            self.on_insert(event)

    def on_insert(self, event: ChangeEvent) -> None:
        pass

    def __enter__(self) -> "ChangeRelay":
        self.mount()
        return self

    def __exit__(self, *exc) -> None:
        self.unmount()


class OrderChangeRelay(ChangeRelay):
    """Order board relay; a new order also raises a toast."""

    def __init__(self, source: ChangeSource, cache: QueryCache, notifier: ToastNotifier):
        super().__init__(source, cache, table="orders", cache_key=("orders",))
        self.notifier = notifier

    def on_insert(self, event: ChangeEvent) -> None:
        order = event.new
        try:
            total = float(order.get("total") or 0)
        except (TypeError, ValueError):
            total = 0.0
        self.notifier.info(
            f"New order from Table {order.get('table_number', '?')}",
            f"Total: ${total:.2f}",
        )


class FloorTableRelay(ChangeRelay):
    def __init__(self, source: ChangeSource, cache: QueryCache):
        super().__init__(source, cache, table="floor_tables", cache_key=("floor-tables",))
