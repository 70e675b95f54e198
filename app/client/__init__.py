"""
Dashboard client side: query cache, optimistic updates, toasts and the
relays that turn table change events into cache invalidations.
"""

from app.client.cache import CacheEntry, OptimisticUpdate, QueryCache
from app.client.dashboard import DashboardClient, DashboardError
from app.client.notifications import Toast, ToastNotifier
from app.client.relay import ChangeRelay, FloorTableRelay, OrderChangeRelay

__all__ = [
    "CacheEntry",
    "OptimisticUpdate",
    "QueryCache",
    "DashboardClient",
    "DashboardError",
    "Toast",
    "ToastNotifier",
    "ChangeRelay",
    "FloorTableRelay",
    "OrderChangeRelay",
]
