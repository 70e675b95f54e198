"""
Financial Reporting

Pure functions that turn a list of transactions into the figures shown on
the finances screen:

    resolve_range      today/week/month/year/custom -> inclusive (start, end)
    filter_by_range    transactions whose date lies within the bounds
    build_time_series  revenue/expense per day, week or month, zero filled
    income_by_category percentage of total income per category
    compute_totals     revenue, expenses, profit, margin, average ticket

Any object with ``type``, ``category``, ``amount`` and ``transaction_date``
attributes is accepted (ORM rows or schema objects).
"""

import calendar
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Protocol, Sequence

from app.core.errors import ValidationFailed

DAY = "day"
WEEK = "week"
MONTH = "month"

RANGE_SPANS = {
    "week": 7,
    "month": 30,
    "year": 365,
}


class TransactionLike(Protocol):
    type: Any
    category: str
    amount: float
    transaction_date: date


@dataclass
class TimeSeriesPoint:
    label: str
    period_start: date
    period_end: date
    revenue: float = 0.0
    expenses: float = 0.0

    @property
    def profit(self) -> float:
        return round(self.revenue - self.expenses, 2)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["profit"] = self.profit
        return data


@dataclass
class CategoryShare:
    category: str
    amount: float
    percentage: float


@dataclass
class FinanceTotals:
    revenue: float
    expenses: float
    net_profit: float
    margin: float
    average_transaction: float
    transaction_count: int


def _kind(tx: TransactionLike) -> str:
    return getattr(tx.type, "value", tx.type)


def resolve_range(
    selector: str,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> tuple[date, date]:
    """
    Turn a range selector into inclusive bounds.

    today  -> (today, today)
    week   -> the last 7 days ending today
    month  -> the last 30 days ending today
    year   -> the last 365 days ending today
    custom -> (start, end) as given
    """
    selector = getattr(selector, "value", selector)

    if selector == "today":
        return today, today
    if selector in RANGE_SPANS:
        return today - timedelta(days=RANGE_SPANS[selector] - 1), today
    if selector == "custom":
        if start is None or end is None:
            raise ValidationFailed("Custom range needs a start and an end date")
        if start > end:
            raise ValidationFailed("Start date must be on or before end date")
        return start, end

    raise ValidationFailed(f"Unknown date range: {selector}")


def filter_by_range(
    transactions: Iterable[TransactionLike],
    start: date,
    end: date,
) -> list[TransactionLike]:
    return [tx for tx in transactions if start <= tx.transaction_date <= end]


def choose_granularity(start: date, end: date) -> str:
    """Day buckets up to 7 days, week buckets up to 31, months beyond."""
    span = (end - start).days + 1
    if span <= 7:
        return DAY
    if span <= 31:
        return WEEK
    return MONTH


def _month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _empty_buckets(start: date, end: date, granularity: str) -> list[TimeSeriesPoint]:
    buckets: list[TimeSeriesPoint] = []

    if granularity == DAY:
        current = start
        while current <= end:
            buckets.append(TimeSeriesPoint(
                label=current.strftime("%a %d"),
                period_start=current,
                period_end=current,
            ))
            current += timedelta(days=1)

    elif granularity == WEEK:
        current = start
        while current <= end:
            period_end = min(current + timedelta(days=6), end)
            buckets.append(TimeSeriesPoint(
                label=f"{current.strftime('%b %d')}",
                period_start=current,
                period_end=period_end,
            ))
            current = period_end + timedelta(days=1)

    else:
        current = start
        while current <= end:
            period_end = min(_month_end(current), end)
            buckets.append(TimeSeriesPoint(
                label=current.strftime("%b %Y"),
                period_start=current,
                period_end=period_end,
            ))
            current = period_end + timedelta(days=1)

    return buckets


def build_time_series(
    transactions: Iterable[TransactionLike],
    start: date,
    end: date,
    granularity: Optional[str] = None,
) -> list[TimeSeriesPoint]:
    """
    One point per period in ``[start, end]``, chronological.

    Periods without transactions are kept with zero revenue and expenses.
    Week buckets start on ``start``; month buckets follow calendar months,
    clipped to the range.
    """
    granularity = granularity or choose_granularity(start, end)
    buckets = _empty_buckets(start, end, granularity)

    for tx in transactions:
        if not start <= tx.transaction_date <= end:
            continue
        # Buckets are few (<= 366); a linear scan keeps this readable.
        for bucket in buckets:
            if bucket.period_start <= tx.transaction_date <= bucket.period_end:
                if _kind(tx) == "income":
                    bucket.revenue += tx.amount
                else:
                    bucket.expenses += tx.amount
                break

    for bucket in buckets:
        bucket.revenue = round(bucket.revenue, 2)
        bucket.expenses = round(bucket.expenses, 2)

    return buckets


def income_by_category(transactions: Iterable[TransactionLike]) -> list[CategoryShare]:
    """Share of total income per category, largest first."""
    amounts: dict[str, float] = defaultdict(float)
    for tx in transactions:
        if _kind(tx) == "income":
            amounts[tx.category] += tx.amount

    total = sum(amounts.values())
    if total <= 0:
        return []

    shares = [
        CategoryShare(
            category=category,
            amount=round(amount, 2),
            percentage=round(amount / total * 100, 1),
        )
        for category, amount in amounts.items()
    ]
    return sorted(shares, key=lambda s: (-s.amount, s.category))


def compute_totals(transactions: Sequence[TransactionLike]) -> FinanceTotals:
    revenue = sum(tx.amount for tx in transactions if _kind(tx) == "income")
    expenses = sum(tx.amount for tx in transactions if _kind(tx) != "income")
    profit = revenue - expenses
    count = len(transactions)

    return FinanceTotals(
        revenue=round(revenue, 2),
        expenses=round(expenses, 2),
        net_profit=round(profit, 2),
        margin=round(profit / revenue * 100, 1) if revenue else 0.0,
        average_transaction=round((revenue + expenses) / count, 2) if count else 0.0,
        transaction_count=count,
    )


def build_report(
    transactions: Iterable[TransactionLike],
    selector: str,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict[str, Any]:
    """Everything the finances screen needs for one range."""
    start, end = resolve_range(selector, today, start, end)
    in_range = sorted(
        filter_by_range(transactions, start, end),
        key=lambda tx: tx.transaction_date,
        reverse=True,
    )
    granularity = choose_granularity(start, end)

    return {
        "range": getattr(selector, "value", selector),
        "start": start,
        "end": end,
        "granularity": granularity,
        "totals": asdict(compute_totals(in_range)),
        "time_series": [p.to_dict() for p in build_time_series(in_range, start, end, granularity)],
        "income_by_category": [asdict(s) for s in income_by_category(in_range)],
        "transactions": in_range,
    }
