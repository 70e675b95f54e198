"""
Dashboard summary metrics.
"""

import logging
from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import ALL_ROLES, CurrentUser, require_roles
from app.database import get_db
from app.models import (
    FloorTable,
    InventoryItem,
    Order,
    OrderStatus,
    Reservation,
    StaffMember,
    StaffStatus,
)
from app.schemas import DashboardSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Dashboard"])


async def _count_by(db: AsyncSession, column) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {status.value: count for status, count in result.all()}


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard_summary(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> DashboardSummary:
    """Counts and today's figures for the overview cards."""
    today = date.today()
    today_start = datetime.combine(today, time.min, tzinfo=timezone.utc)

    orders_by_status = await _count_by(db, Order.status)
    for status in OrderStatus:
        orders_by_status.setdefault(status.value, 0)

    tables_by_status = await _count_by(db, FloorTable.status)

    today_revenue = await db.scalar(
        select(func.coalesce(func.sum(Order.total), 0.0)).where(Order.created_at >= today_start)
    )
    today_reservations = await db.scalar(
        select(func.count(Reservation.id)).where(Reservation.reservation_date == today)
    )
    low_stock_items = await db.scalar(
        select(func.count(InventoryItem.id)).where(
            InventoryItem.current_stock < InventoryItem.minimum_stock
        )
    )
    staff_on_duty = await db.scalar(
        select(func.count(StaffMember.id)).where(StaffMember.status == StaffStatus.ACTIVE)
    )

    return DashboardSummary(
        active_orders=sum(
            count for status, count in orders_by_status.items()
            if status != OrderStatus.COMPLETED.value
        ),
        orders_by_status=orders_by_status,
        today_revenue=round(today_revenue or 0.0, 2),
        tables_by_status=tables_by_status,
        today_reservations=today_reservations or 0,
        low_stock_items=low_stock_items or 0,
        staff_on_duty=staff_on_duty or 0,
    )
