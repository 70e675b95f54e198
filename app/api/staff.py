"""
Staff roster endpoints.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import apply_changes, get_or_404, remove, save
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import StaffMember, StaffStatus
from app.schemas import (
    StaffMemberCreate,
    StaffMemberResponse,
    StaffMemberUpdate,
    StaffStatusEnum,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/staff", tags=["Staff"])


@router.get("", response_model=List[StaffMemberResponse])
async def list_staff(
    status: Optional[StaffStatusEnum] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[StaffMemberResponse]:
    query = select(StaffMember).order_by(StaffMember.full_name)
    if status:
        query = query.where(StaffMember.status == StaffStatus(status.value))

    result = await db.execute(query)
    return [StaffMemberResponse.model_validate(s) for s in result.scalars().all()]


@router.post("", response_model=StaffMemberResponse, status_code=201)
async def create_staff_member(
    data: StaffMemberCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> StaffMemberResponse:
    member = StaffMember(**data.model_dump())
    db.add(member)
    await save(db, member)
    logger.info(f"Staff member {member.full_name} added by {user.user_id}")
    return StaffMemberResponse.model_validate(member)


@router.patch("/{member_id}", response_model=StaffMemberResponse)
async def update_staff_member(
    member_id: uuid.UUID,
    data: StaffMemberUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> StaffMemberResponse:
    member = await get_or_404(db, StaffMember, member_id, "Staff member")
    apply_changes(member, data.model_dump(exclude_unset=True))
    await save(db, member)
    return StaffMemberResponse.model_validate(member)


@router.delete("/{member_id}")
async def delete_staff_member(
    member_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    member = await get_or_404(db, StaffMember, member_id, "Staff member")
    await remove(db, member)
    return {"success": True}
