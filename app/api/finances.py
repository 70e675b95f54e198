"""
Transactions and financial reporting.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import apply_changes, get_or_404, remove, save
from app.core.errors import ValidationFailed
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import Transaction
from app.schemas import (
    DateRangeEnum,
    ExportQueuedResponse,
    FinanceReportResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)
from app.services.reporting import build_report
from app.tasks import export_financial_report

logger = logging.getLogger(__name__)

transactions_router = APIRouter(prefix="/api/transactions", tags=["Finances"])
finances_router = APIRouter(prefix="/api/finances", tags=["Finances"])


# =============================================================================
# TRANSACTIONS
# =============================================================================

@transactions_router.get("", response_model=List[TransactionResponse])
async def list_transactions(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[TransactionResponse]:
    """Newest first; ``start``/``end`` are inclusive."""
    if start and end and start > end:
        raise ValidationFailed("Start date must be on or before end date")

    query = select(Transaction).order_by(
        Transaction.transaction_date.desc(), Transaction.created_at.desc()
    )
    if start:
        query = query.where(Transaction.transaction_date >= start)
    if end:
        query = query.where(Transaction.transaction_date <= end)

    result = await db.execute(query)
    return [TransactionResponse.model_validate(t) for t in result.scalars().all()]


@transactions_router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> TransactionResponse:
    transaction = Transaction(**data.model_dump(), created_by=user.user_id)
    db.add(transaction)
    await save(db, transaction)
    logger.info(
        f"{transaction.type.value} of {transaction.amount:.2f} recorded by {user.user_id}"
    )
    return TransactionResponse.model_validate(transaction)


@transactions_router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: uuid.UUID,
    data: TransactionUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> TransactionResponse:
    transaction = await get_or_404(db, Transaction, transaction_id, "Transaction")
    apply_changes(transaction, data.model_dump(exclude_unset=True))
    await save(db, transaction)
    return TransactionResponse.model_validate(transaction)


@transactions_router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    transaction = await get_or_404(db, Transaction, transaction_id, "Transaction")
    await remove(db, transaction)
    return {"success": True}


# =============================================================================
# REPORTS
# =============================================================================

async def _report(
    db: AsyncSession,
    range_: DateRangeEnum,
    start: Optional[date],
    end: Optional[date],
) -> FinanceReportResponse:
    bounds_query = select(Transaction)
    # Narrow in SQL only when the caller gave bounds; rolling ranges are
    # resolved against today inside build_report.
    if range_ == DateRangeEnum.CUSTOM and start and end:
        bounds_query = bounds_query.where(
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end,
        )

    result = await db.execute(bounds_query)
    report = build_report(
        result.scalars().all(),
        range_,
        today=date.today(),
        start=start,
        end=end,
    )
    report["transactions"] = [TransactionResponse.model_validate(t) for t in report["transactions"]]
    return FinanceReportResponse.model_validate(report)


@finances_router.get("/report", response_model=FinanceReportResponse, summary="Finance Report")
async def finance_report(
    range_: DateRangeEnum = Query(DateRangeEnum.MONTH, alias="range"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> FinanceReportResponse:
    """Totals, chart series and category breakdown for one date range."""
    return await _report(db, range_, start, end)


@finances_router.post("/export", response_model=ExportQueuedResponse, summary="Export to Excel")
async def export_report(
    range_: DateRangeEnum = Query(DateRangeEnum.MONTH, alias="range"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> ExportQueuedResponse:
    """Queue an Excel export of the report on the Celery worker."""
    report = await _report(db, range_, start, end)
    task = export_financial_report.delay(report.model_dump(mode="json"))

    logger.info(f"Finance export {report.start}..{report.end} queued as {task.id}")
    return ExportQueuedResponse(
        success=True,
        task_id=str(task.id),
        message=f"Export of {report.start} to {report.end} queued",
    )
