"""
Excel File Manager with Concurrency Control

Writes financial reports to Excel workbooks under DATA_DIRECTORY. Several
Celery workers may export the same range at once, so every write to a
workbook happens under a file lock.

Workbook layout (one sheet each):
    Summary       revenue, expenses, net profit, margin, average ticket
    Time Series   revenue/expenses/profit per period
    Categories    income share per category
    Transactions  every transaction in the range
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DATA_DIR = Path(settings.data_directory)
REPORT_PREFIX = "finance_report"


class ExcelManager:
    """Thread- and process-safe Excel report writer."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    SUMMARY_COLUMNS = ["metric", "value"]

    TIME_SERIES_COLUMNS = [
        "label",
        "period_start",
        "period_end",
        "revenue",
        "expenses",
        "profit",
    ]

    CATEGORY_COLUMNS = ["category", "amount", "percentage"]

    TRANSACTION_COLUMNS = [
        "id",
        "transaction_date",
        "type",
        "category",
        "description",
        "amount",
        "payment_method",
        "reference_number",
        "notes",
    ]

    @classmethod
    def _ensure_data_dir(cls, data_dir: Path) -> None:
        """Create data directory if needed."""
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def report_path(cls, report: dict[str, Any], data_dir: Optional[Path] = None) -> Path:
        data_dir = Path(data_dir or DATA_DIR)
        return data_dir / f"{REPORT_PREFIX}_{report['start']}_{report['end']}.xlsx"

    @classmethod
    def _frames(cls, report: dict[str, Any]) -> dict[str, pd.DataFrame]:
        totals = report.get("totals", {})
        summary = pd.DataFrame(
            [
                ("range", report.get("range")),
                ("start", report.get("start")),
                ("end", report.get("end")),
                ("revenue", totals.get("revenue", 0.0)),
                ("expenses", totals.get("expenses", 0.0)),
                ("net_profit", totals.get("net_profit", 0.0)),
                ("margin_percent", totals.get("margin", 0.0)),
                ("average_transaction", totals.get("average_transaction", 0.0)),
                ("transaction_count", totals.get("transaction_count", 0)),
            ],
            columns=cls.SUMMARY_COLUMNS,
        )

        return {
            "Summary": summary,
            "Time Series": pd.DataFrame(
                report.get("time_series", []), columns=cls.TIME_SERIES_COLUMNS
            ),
            "Categories": pd.DataFrame(
                report.get("income_by_category", []), columns=cls.CATEGORY_COLUMNS
            ),
            "Transactions": pd.DataFrame(
                report.get("transactions", []), columns=cls.TRANSACTION_COLUMNS
            ),
        }

    @classmethod
    def export_financial_report(
        cls,
        report: dict[str, Any],
        data_dir: Optional[Path] = None,
    ) -> dict[str, Any]:
        """
        Write ``report`` (a JSON-ready finance report) to its workbook.

        The workbook for a given start/end pair is overwritten on each
        export. Returns a result dict; failures are reported in it rather
        than raised, with ``retryable`` set for lock timeouts and I/O errors.
        """
        data_dir = Path(data_dir or DATA_DIR)
        cls._ensure_data_dir(data_dir)

        file_path = cls.report_path(report, data_dir)
        lock_path = file_path.with_suffix(".xlsx.lock")
        result = {
            "success": False,
            "message": "",
            "file": str(file_path),
            "rows": len(report.get("transactions", [])),
            "exported_at": None,
            "retryable": False,
        }

        try:
            lock = FileLock(str(lock_path), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for {file_path.name}")

                export_time = datetime.now().isoformat()
                with pd.ExcelWriter(str(file_path), engine="openpyxl") as writer:
                    for sheet, frame in cls._frames(report).items():
                        frame.to_excel(writer, sheet_name=sheet, index=False)

                logger.info(f"Finance report exported to {file_path.name} ({result['rows']} transactions)")

                result["success"] = True
                result["message"] = f"Report {report['start']} to {report['end']} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {file_path.name}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            result["retryable"] = True
            logger.error(f"Lock timeout for {file_path.name}")

        except OSError as e:
            result["message"] = str(e)
            result["retryable"] = True
            logger.exception(f"Error exporting {file_path.name}")

        except ValueError as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting {file_path.name}")

        return result

    @classmethod
    def read_report(cls, file_path: Path) -> dict[str, list[dict[str, Any]]]:
        """Read every sheet of an exported workbook back as records."""
        sheets = pd.read_excel(file_path, sheet_name=None, engine="openpyxl")
        return {name: frame.to_dict("records") for name, frame in sheets.items()}

    @classmethod
    def list_exports(cls, data_dir: Optional[Path] = None) -> list[Path]:
        data_dir = Path(data_dir or DATA_DIR)
        if not data_dir.exists():
            return []
        return sorted(data_dir.glob(f"{REPORT_PREFIX}_*.xlsx"))

    @classmethod
    def clear_all(cls, data_dir: Optional[Path] = None) -> bool:
        """Delete all exported workbooks and their lock files."""
        data_dir = Path(data_dir or DATA_DIR)
        try:
            for f in data_dir.glob(f"{REPORT_PREFIX}_*.xlsx*"):
                f.unlink()
            logger.info("All finance exports cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing exports: {e}")
            return False
