"""
Finance reporting tests: range resolution, bucketing and totals.
"""

from dataclasses import dataclass
from datetime import date

import pytest

from app.core.errors import ValidationFailed
from app.services.reporting import (
    DAY,
    MONTH,
    WEEK,
    build_report,
    build_time_series,
    choose_granularity,
    compute_totals,
    income_by_category,
    resolve_range,
)

TODAY = date(2024, 6, 15)


@dataclass
class Tx:
    type: str
    category: str
    amount: float
    transaction_date: date


def income(amount, day, category="Food Sales"):
    return Tx("income", category, amount, day)


def expense(amount, day, category="Supplies"):
    return Tx("expense", category, amount, day)


class TestResolveRange:

    @pytest.mark.parametrize("selector,start", [
        ("today", date(2024, 6, 15)),
        ("week", date(2024, 6, 9)),
        ("month", date(2024, 5, 17)),
        ("year", date(2023, 6, 17)),
    ])
    def test_rolling_ranges_end_today(self, selector, start):
        assert resolve_range(selector, TODAY) == (start, TODAY)

    def test_custom_range(self):
        assert resolve_range("custom", TODAY, date(2024, 1, 1), date(2024, 1, 5)) == (
            date(2024, 1, 1), date(2024, 1, 5)
        )

    def test_custom_needs_both_bounds(self):
        with pytest.raises(ValidationFailed):
            resolve_range("custom", TODAY, start=date(2024, 1, 1))

    def test_custom_start_after_end(self):
        with pytest.raises(ValidationFailed, match="Start date"):
            resolve_range("custom", TODAY, date(2024, 2, 1), date(2024, 1, 1))

    def test_unknown_selector(self):
        with pytest.raises(ValidationFailed):
            resolve_range("fortnight", TODAY)


class TestTimeSeries:

    def test_granularity_thresholds(self):
        assert choose_granularity(date(2024, 6, 1), date(2024, 6, 7)) == DAY
        assert choose_granularity(date(2024, 6, 1), date(2024, 6, 8)) == WEEK
        assert choose_granularity(date(2024, 5, 1), date(2024, 5, 31)) == WEEK
        assert choose_granularity(date(2024, 5, 1), date(2024, 6, 1)) == MONTH

    def test_five_day_range_has_five_zero_filled_points(self):
        start, end = date(2024, 6, 10), date(2024, 6, 14)
        points = build_time_series([income(50, date(2024, 6, 12))], start, end)

        assert len(points) == 5
        assert [p.revenue for p in points] == [0, 0, 50, 0, 0]
        assert points[0].label == "Mon 10"

    def test_week_buckets_start_on_range_start(self):
        start, end = date(2024, 6, 1), date(2024, 6, 20)
        points = build_time_series(
            [income(10, date(2024, 6, 7)), income(20, date(2024, 6, 8)), expense(5, date(2024, 6, 20))],
            start, end,
        )

        assert [(p.period_start, p.period_end) for p in points] == [
            (date(2024, 6, 1), date(2024, 6, 7)),
            (date(2024, 6, 8), date(2024, 6, 14)),
            (date(2024, 6, 15), date(2024, 6, 20)),
        ]
        assert [p.revenue for p in points] == [10, 20, 0]
        assert points[2].expenses == 5
        assert points[0].label == "Jun 01"

    def test_month_buckets_follow_calendar(self):
        points = build_time_series([], date(2024, 1, 15), date(2024, 3, 10))

        assert [p.label for p in points] == ["Jan 2024", "Feb 2024", "Mar 2024"]
        assert points[0].period_end == date(2024, 1, 31)
        assert points[1].period_end == date(2024, 2, 29)
        assert points[2].period_end == date(2024, 3, 10)

    def test_out_of_range_transactions_ignored(self):
        points = build_time_series([income(99, date(2024, 7, 1))], date(2024, 6, 1), date(2024, 6, 3))
        assert sum(p.revenue for p in points) == 0


class TestTotals:

    def test_income_by_category_percentages(self):
        shares = income_by_category([
            income(300, TODAY, "Food Sales"),
            income(100, TODAY, "Beverage Sales"),
            expense(999, TODAY),
        ])

        assert [(s.category, s.percentage) for s in shares] == [
            ("Food Sales", 75.0),
            ("Beverage Sales", 25.0),
        ]

    def test_no_income_no_shares(self):
        assert income_by_category([expense(10, TODAY)]) == []

    def test_compute_totals(self):
        totals = compute_totals([income(300, TODAY), income(100, TODAY), expense(150, TODAY)])

        assert totals.revenue == 400
        assert totals.expenses == 150
        assert totals.net_profit == 250
        assert totals.margin == 62.5
        assert totals.average_transaction == round(550 / 3, 2)
        assert totals.transaction_count == 3

    def test_empty_totals(self):
        totals = compute_totals([])
        assert totals.margin == 0.0
        assert totals.average_transaction == 0.0

    def test_build_report_filters_and_sorts(self):
        report = build_report(
            [income(10, date(2024, 6, 14)), income(20, date(2024, 6, 15)), income(99, date(2024, 1, 1))],
            "week",
            today=TODAY,
        )

        assert report["granularity"] == DAY
        assert len(report["time_series"]) == 7
        assert report["totals"]["revenue"] == 30
        assert [tx.amount for tx in report["transactions"]] == [20, 10]
