"""
Celery Tasks
Background jobs for the finance screen.
"""

import logging
import time
from datetime import datetime

from app.celery_worker import celery_app
from app.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
)
def export_financial_report(self, report: dict) -> dict:
    """
    Write a finance report to an Excel workbook.

    Args:
        report: JSON-ready finance report (FinanceReportResponse dump)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    label = f"{report.get('start')}..{report.get('end')}"

    logger.info(f"Task {task_id}: exporting finance report {label}")
    start_time = time.time()

    result = ExcelManager.export_financial_report(report)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: report {label} written in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: report {label} failed - {result['message']}")
        if result.get('retryable'):
            raise self.retry(exc=OSError(result['message']))

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def clear_finance_exports() -> dict:
    """
    Delete every exported workbook.
    """
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Exports cleared' if success else 'Failed to clear exports',
        'timestamp': datetime.now().isoformat()
    }
