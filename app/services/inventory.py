"""
Inventory stock levels.

Stock is graded against the item's minimum:
    below 50% of minimum   critical
    below 100% of minimum  low
    otherwise              good
"""

from typing import Any, Iterable

CRITICAL = "critical"
LOW = "low"
GOOD = "good"


def stock_status(current: float, minimum: float) -> str:
    if minimum <= 0:
        return GOOD
    percentage = current / minimum * 100
    if percentage < 50:
        return CRITICAL
    if percentage < 100:
        return LOW
    return GOOD


def is_low_stock(item: Any) -> bool:
    return item.current_stock < item.minimum_stock


def total_value(items: Iterable[Any]) -> float:
    """Stock on hand valued at cost; items without a cost count as zero."""
    return round(sum(i.current_stock * (i.cost_per_unit or 0) for i in items), 2)


def low_stock_alerts(items: Iterable[Any]) -> list[dict[str, Any]]:
    """Items below minimum, most depleted first."""
    alerts = [
        {
            "id": i.id,
            "name": i.name,
            "current_stock": i.current_stock,
            "minimum_stock": i.minimum_stock,
            "unit": i.unit,
            "stock_status": stock_status(i.current_stock, i.minimum_stock),
        }
        for i in items
        if is_low_stock(i)
    ]
    return sorted(alerts, key=lambda a: _fill_ratio(a["current_stock"], a["minimum_stock"]))


def _fill_ratio(current: float, minimum: float) -> float:
    return current / minimum if minimum > 0 else float("inf")
