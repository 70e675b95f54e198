"""
Realtime change notifications.
"""

from app.realtime.broker import (
    ChangeBroker,
    ChangeEvent,
    ChangeType,
    Subscription,
    get_broker,
)

__all__ = ["ChangeBroker", "ChangeEvent", "ChangeType", "Subscription", "get_broker"]
