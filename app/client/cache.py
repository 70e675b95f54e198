"""
Client Query Cache

Results of dashboard queries keyed by a logical query key, e.g.
``("orders",)`` or ``("reservations", "2024-06-01")``.

Invalidation marks entries stale instead of dropping them: the last known
data stays readable (screens keep rendering) and the next ``fetch`` goes
back to the server. Invalidating a prefix covers every key below it, so
``invalidate(("reservations",))`` marks every day stale.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

QueryKey = tuple
KeyLike = Union[str, tuple]


def as_key(key: KeyLike) -> QueryKey:
    return key if isinstance(key, tuple) else (key,)


@dataclass
class CacheEntry:
    data: Any
    stale: bool = False
    updated_at: float = field(default_factory=time.monotonic)


class QueryCache:
    """Thread-safe keyed cache with stale marking."""

    def __init__(self):
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._lock = threading.RLock()

    def peek(self, key: KeyLike) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(as_key(key))

    def get(self, key: KeyLike, default: Any = None) -> Any:
        """Cached data for ``key``, stale or not."""
        entry = self.peek(key)
        return entry.data if entry is not None else default

    def set(self, key: KeyLike, data: Any) -> None:
        with self._lock:
            self._entries[as_key(key)] = CacheEntry(data=data)

    def remove(self, key: KeyLike) -> None:
        with self._lock:
            self._entries.pop(as_key(key), None)

    def is_stale(self, key: KeyLike) -> bool:
        """Missing entries count as stale."""
        entry = self.peek(key)
        return entry is None or entry.stale

    def invalidate(self, prefix: KeyLike) -> int:
        """Mark every key starting with ``prefix`` stale; returns how many."""
        prefix = as_key(prefix)
        with self._lock:
            matched = [
                entry for key, entry in self._entries.items()
                if key[:len(prefix)] == prefix
            ]
            for entry in matched:
                entry.stale = True
        if matched:
            logger.debug(f"Invalidated {len(matched)} cache entries under {prefix}")
        return len(matched)

    def fetch(self, key: KeyLike, loader: Callable[[], Any]) -> Any:
        """Return fresh data for ``key``, calling ``loader`` if stale or missing."""
        key = as_key(key)
        entry = self.peek(key)
        if entry is not None and not entry.stale:
            return entry.data

        data = loader()
        self.set(key, data)
        return data

    def keys(self) -> list[QueryKey]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class OptimisticUpdate:
    """
    Speculative change to one cache entry.

        update = OptimisticUpdate(cache, ("floor-tables",), patch)
        update.apply()        # snapshot, then write patch(snapshot)
        ...server call...
        update.commit()       # or update.rollback() on failure

    ``commit`` and ``rollback`` both mark the key stale so the next read
    confirms the result with the server. ``rollback`` restores the snapshot
    wholesale first. Used as a context manager, an exception in the block
    rolls back and propagates.
    """

    PENDING = "pending"
    APPLIED = "applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    def __init__(self, cache: QueryCache, key: KeyLike, patch: Callable[[Any], Any]):
        self.cache = cache
        self.key = as_key(key)
        self.patch = patch
        self.state = self.PENDING
        self._had_entry = False
        self._snapshot: Any = None

    def apply(self) -> Any:
        if self.state != self.PENDING:
            raise RuntimeError(f"Optimistic update already {self.state}")

        entry = self.cache.peek(self.key)
        self._had_entry = entry is not None
        self._snapshot = copy.deepcopy(entry.data) if entry is not None else None

        speculative = self.patch(copy.deepcopy(self._snapshot))
        self.cache.set(self.key, speculative)
        self.state = self.APPLIED
        return speculative

    def commit(self) -> None:
        self._require_applied()
        self.state = self.COMMITTED
        self.cache.invalidate(self.key)

    def rollback(self) -> None:
        self._require_applied()
        if self._had_entry:
            self.cache.set(self.key, self._snapshot)
        else:
            self.cache.remove(self.key)
        self.state = self.ROLLED_BACK
        self.cache.invalidate(self.key)
        logger.debug(f"Rolled back optimistic update of {self.key}")

    def run(self, mutation: Callable[[], Any]) -> Any:
        """Apply, run ``mutation``, then commit or roll back."""
        with self:
            return mutation()

    def _require_applied(self) -> None:
        if self.state != self.APPLIED:
            raise RuntimeError(f"Optimistic update is {self.state}, not applied")

    def __enter__(self) -> "OptimisticUpdate":
        self.apply()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
