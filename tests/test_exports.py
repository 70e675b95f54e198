"""
Excel export and inventory grading tests.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from app.services.excel_manager import ExcelManager
from app.services.inventory import (
    CRITICAL,
    GOOD,
    LOW,
    low_stock_alerts,
    stock_status,
    total_value,
)
from app.tasks import export_financial_report

REPORT = {
    "range": "custom",
    "start": "2024-06-01",
    "end": "2024-06-03",
    "granularity": "day",
    "totals": {
        "revenue": 400.0,
        "expenses": 150.0,
        "net_profit": 250.0,
        "margin": 62.5,
        "average_transaction": 183.33,
        "transaction_count": 3,
    },
    "time_series": [
        {"label": "Sat 01", "period_start": "2024-06-01", "period_end": "2024-06-01",
         "revenue": 400.0, "expenses": 0.0, "profit": 400.0},
        {"label": "Sun 02", "period_start": "2024-06-02", "period_end": "2024-06-02",
         "revenue": 0.0, "expenses": 150.0, "profit": -150.0},
        {"label": "Mon 03", "period_start": "2024-06-03", "period_end": "2024-06-03",
         "revenue": 0.0, "expenses": 0.0, "profit": 0.0},
    ],
    "income_by_category": [
        {"category": "Food Sales", "amount": 300.0, "percentage": 75.0},
        {"category": "Beverage Sales", "amount": 100.0, "percentage": 25.0},
    ],
    "transactions": [
        {"id": "a", "transaction_date": "2024-06-02", "type": "expense", "category": "Supplies",
         "description": "Napkins", "amount": 150.0},
        {"id": "b", "transaction_date": "2024-06-01", "type": "income", "category": "Food Sales",
         "description": "Dinner", "amount": 300.0},
        {"id": "c", "transaction_date": "2024-06-01", "type": "income", "category": "Beverage Sales",
         "description": "Bar", "amount": 100.0},
    ],
}


class TestExcelManager:

    def test_export_writes_every_sheet(self, tmp_path):
        result = ExcelManager.export_financial_report(REPORT, data_dir=tmp_path)

        assert result["success"] is True
        assert result["rows"] == 3
        assert result["file"].endswith("finance_report_2024-06-01_2024-06-03.xlsx")

        sheets = ExcelManager.read_report(result["file"])
        assert set(sheets) == {"Summary", "Time Series", "Categories", "Transactions"}
        assert len(sheets["Time Series"]) == 3
        assert sheets["Categories"][0]["category"] == "Food Sales"
        summary = {row["metric"]: row["value"] for row in sheets["Summary"]}
        assert summary["net_profit"] == 250

    def test_reexport_overwrites(self, tmp_path):
        ExcelManager.export_financial_report(REPORT, data_dir=tmp_path)
        ExcelManager.export_financial_report(REPORT, data_dir=tmp_path)

        assert len(ExcelManager.list_exports(tmp_path)) == 1

    def test_clear_all(self, tmp_path):
        ExcelManager.export_financial_report(REPORT, data_dir=tmp_path)

        assert ExcelManager.clear_all(tmp_path) is True
        assert ExcelManager.list_exports(tmp_path) == []

    def test_worker_task_runs_export(self):
        result = export_financial_report.run(REPORT)

        assert result["success"] is True
        assert "processing_time_seconds" in result
        ExcelManager.clear_all()

    def test_io_error_is_reported_as_retryable(self, tmp_path):
        (tmp_path / "finance_report_2024-06-01_2024-06-03.xlsx").mkdir()

        result = ExcelManager.export_financial_report(REPORT, data_dir=tmp_path)
        assert result["success"] is False
        assert result["retryable"] is True

    def test_worker_task_retries_retryable_failure(self, monkeypatch):
        def failing_export(report, data_dir=None):
            return {"success": False, "message": "disk full", "retryable": True}

        monkeypatch.setattr(ExcelManager, "export_financial_report", failing_export)

        with pytest.raises(OSError, match="disk full"):
            export_financial_report.run(REPORT)

    def test_worker_task_returns_permanent_failure(self, monkeypatch):
        def failing_export(report, data_dir=None):
            return {"success": False, "message": "bad report", "retryable": False}

        monkeypatch.setattr(ExcelManager, "export_financial_report", failing_export)

        result = export_financial_report.run(REPORT)
        assert result["success"] is False
        assert result["message"] == "bad report"


@dataclass
class Stock:
    name: str
    current_stock: float
    minimum_stock: float
    cost_per_unit: Optional[float] = None
    unit: str = "kg"
    id: str = "x"


class TestInventoryGrading:

    @pytest.mark.parametrize("current,minimum,status", [
        (4, 10, CRITICAL),
        (5, 10, LOW),
        (9.9, 10, LOW),
        (10, 10, GOOD),
        (0, 0, GOOD),
    ])
    def test_stock_status(self, current, minimum, status):
        assert stock_status(current, minimum) == status

    def test_alerts_most_depleted_first(self):
        items = [
            Stock("Flour", 8, 10),
            Stock("Basil", 1, 10),
            Stock("Oil", 20, 10),
        ]
        alerts = low_stock_alerts(items)

        assert [a["name"] for a in alerts] == ["Basil", "Flour"]
        assert alerts[0]["stock_status"] == CRITICAL

    def test_total_value(self):
        items = [Stock("Flour", 10, 5, cost_per_unit=1.25), Stock("Salt", 3, 1)]
        assert total_value(items) == 12.5
