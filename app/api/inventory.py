"""
Inventory endpoints.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import apply_changes, get_or_404, remove, save
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import InventoryItem
from app.schemas import (
    InventoryAlert,
    InventoryAlertsResponse,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
)
from app.services.inventory import CRITICAL, low_stock_alerts, total_value

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inventory", tags=["Inventory"])


@router.get("", response_model=List[InventoryItemResponse])
async def list_inventory(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[InventoryItemResponse]:
    result = await db.execute(
        select(InventoryItem).order_by(InventoryItem.category, InventoryItem.name)
    )
    return [InventoryItemResponse.model_validate(i) for i in result.scalars().all()]


@router.get("/alerts", response_model=InventoryAlertsResponse, summary="Low Stock Alerts")
async def inventory_alerts(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> InventoryAlertsResponse:
    result = await db.execute(select(InventoryItem))
    items = result.scalars().all()

    alerts = [InventoryAlert(**a) for a in low_stock_alerts(items)]
    return InventoryAlertsResponse(
        total_value=total_value(items),
        critical=sum(1 for a in alerts if a.stock_status == CRITICAL),
        alerts=alerts,
    )


@router.post("", response_model=InventoryItemResponse, status_code=201)
async def create_inventory_item(
    data: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> InventoryItemResponse:
    item = InventoryItem(**data.model_dump())
    db.add(item)
    await save(db, item)
    return InventoryItemResponse.model_validate(item)


@router.patch("/{item_id}", response_model=InventoryItemResponse)
async def update_inventory_item(
    item_id: uuid.UUID,
    data: InventoryItemUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> InventoryItemResponse:
    item = await get_or_404(db, InventoryItem, item_id, "Inventory item")
    apply_changes(item, data.model_dump(exclude_unset=True))
    await save(db, item)
    return InventoryItemResponse.model_validate(item)


@router.delete("/{item_id}")
async def delete_inventory_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    item = await get_or_404(db, InventoryItem, item_id, "Inventory item")
    await remove(db, item)
    return {"success": True}
