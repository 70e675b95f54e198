"""
Reservation endpoints. Every staff role may book, edit and cancel.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import apply_changes, get_or_404, remove, save
from app.core.security import ALL_ROLES, CurrentUser, require_roles
from app.database import get_db
from app.models import Reservation
from app.schemas import ReservationCreate, ReservationResponse, ReservationUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


@router.get("", response_model=List[ReservationResponse])
async def list_reservations(
    on: Optional[date] = Query(None, alias="date", description="Only this day"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[ReservationResponse]:
    query = select(Reservation).order_by(
        Reservation.reservation_date, Reservation.reservation_time
    )
    if on is not None:
        query = query.where(Reservation.reservation_date == on)

    result = await db.execute(query)
    return [ReservationResponse.model_validate(r) for r in result.scalars().all()]


@router.post("", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> ReservationResponse:
    reservation = Reservation(**data.model_dump())
    db.add(reservation)
    await save(db, reservation)
    logger.info(
        f"Reservation for {reservation.customer_name} on "
        f"{reservation.reservation_date} {reservation.reservation_time}"
    )
    return ReservationResponse.model_validate(reservation)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: uuid.UUID,
    data: ReservationUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> ReservationResponse:
    reservation = await get_or_404(db, Reservation, reservation_id, "Reservation")
    apply_changes(reservation, data.model_dump(exclude_unset=True))
    await save(db, reservation)
    return ReservationResponse.model_validate(reservation)


@router.delete("/{reservation_id}")
async def delete_reservation(
    reservation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> dict:
    reservation = await get_or_404(db, Reservation, reservation_id, "Reservation")
    await remove(db, reservation)
    return {"success": True}
