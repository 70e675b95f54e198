"""
Order endpoints: public intake plus the staff order board.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import (
    apply_changes,
    client_address,
    commit,
    get_or_404,
    publish_change,
    row_payload,
    save,
)
from app.core.errors import AppError, PersistenceFailure, RateLimited
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import Order, OrderItem, OrderStatus
from app.realtime import ChangeType
from app.schemas import (
    ErrorResponse,
    OrderDetailResponse,
    OrderIntakeRequest,
    OrderIntakeResponse,
    OrderItemResponse,
    OrderResponse,
    OrderStatusEnum,
    OrderStatusUpdate,
)
from app.services.order_intake import OrderIntakeService
from app.services.rate_limit import get_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

TABLE = "orders"


async def enforce_order_rate_limit(request: Request) -> None:
    """
    Count an intake attempt against the client address.

    Resolved before the body is validated, so malformed attempts count.
    """
    address = client_address(request)
    decision = await get_rate_limiter().hit(address)
    if not decision.allowed:
        logger.warning(f"Order rate limit reached for {address} ({decision.count}/{decision.limit})")
        raise RateLimited("Too many orders. Please try again later.")


@router.post(
    "",
    dependencies=[Depends(enforce_order_rate_limit)],
    response_model=OrderIntakeResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Submit Order (public)",
)
async def create_order(
    order_data: OrderIntakeRequest,
    db: AsyncSession = Depends(get_db),
) -> OrderIntakeResponse:
    """
    Validate, reprice and store an order.

    Client prices are ignored; the total is recomputed from the catalog.
    Limited to a fixed number of orders per client address per window.
    """
    try:
        order = await OrderIntakeService(db).create_order(order_data)
    except AppError:
        raise
    except Exception:
        logger.exception("Unexpected error during order intake")
        raise PersistenceFailure("An unexpected error occurred")

    publish_change(TABLE, ChangeType.INSERT, new=row_payload(order))

    return OrderIntakeResponse(success=True, order=OrderResponse.model_validate(order))


@router.get("", response_model=List[OrderResponse], summary="List Orders")
async def list_orders(
    status: Optional[OrderStatusEnum] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[OrderResponse]:
    """Newest first, optionally filtered by status."""
    query = select(Order).order_by(Order.created_at.desc()).limit(limit)
    if status:
        query = query.where(Order.status == OrderStatus(status.value))

    result = await db.execute(query)
    return [OrderResponse.model_validate(o) for o in result.scalars().all()]


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> OrderDetailResponse:
    order = await get_or_404(db, Order, order_id, "Order")

    result = await db.execute(
        select(OrderItem)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.created_at)
    )
    items = [OrderItemResponse.model_validate(i) for i in result.scalars().all()]

    return OrderDetailResponse(
        **OrderResponse.model_validate(order).model_dump(),
        items=items,
    )


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> OrderResponse:
    """Move an order to any status; there is no enforced transition order."""
    order = await get_or_404(db, Order, order_id, "Order")
    old = row_payload(order)

    apply_changes(order, {"status": update.status})
    await save(db, order)

    logger.info(f"Order {order_id} -> {order.status.value} by {user.user_id}")
    publish_change(TABLE, ChangeType.UPDATE, new=row_payload(order), old=old)
    return OrderResponse.model_validate(order)


@router.delete("/{order_id}")
async def delete_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    order = await get_or_404(db, Order, order_id, "Order")
    old = row_payload(order)

    # Items first: not every backend enforces ON DELETE CASCADE.
    await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
    await db.execute(delete(Order).where(Order.id == order_id))
    await commit(db)

    logger.info(f"Order {order_id} deleted by {user.user_id}")
    publish_change(TABLE, ChangeType.DELETE, old=old)
    return {"success": True}

