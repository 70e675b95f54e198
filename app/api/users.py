"""
User and role management.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import commit
from app.core.security import ADMINS, CurrentUser, get_current_user, require_roles
from app.database import get_db
from app.models import AppRole, Profile, UserRole
from app.schemas import MeResponse, RoleAssignment, UserWithRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


def _user_with_role(user_id: uuid.UUID, profile, role_row) -> UserWithRole:
    return UserWithRole(
        id=user_id,
        full_name=profile.full_name if profile else None,
        email=profile.email if profile else None,
        avatar_url=profile.avatar_url if profile else None,
        role=role_row.role.value if role_row else None,
        role_id=role_row.id if role_row else None,
    )


@router.get("/me", response_model=MeResponse)
async def me(user: CurrentUser = Depends(get_current_user)) -> MeResponse:
    """The caller's role; signed-in users without a role get ``role: null``."""
    return MeResponse(
        user_id=user.user_id,
        role=user.role.value if user.role else None,
        is_manager=user.is_manager,
        is_admin=user.is_admin,
    )


@router.get("/users", response_model=List[UserWithRole])
async def list_users(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ADMINS)),
) -> List[UserWithRole]:
    """Every profile with its role, by name."""
    profiles = (await db.execute(select(Profile).order_by(Profile.full_name))).scalars().all()
    roles = {r.user_id: r for r in (await db.execute(select(UserRole))).scalars().all()}

    return [_user_with_role(p.id, p, roles.get(p.id)) for p in profiles]


@router.put("/users/{user_id}/role", response_model=UserWithRole)
async def set_user_role(
    user_id: uuid.UUID,
    assignment: RoleAssignment,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ADMINS)),
) -> UserWithRole:
    """
    Assign, change or remove a user's role.

    ``role: null`` removes the role; otherwise the existing row is updated
    or a new one is inserted.
    """
    existing = await db.scalar(select(UserRole).where(UserRole.user_id == user_id))

    if assignment.role is None:
        if existing is not None:
            await db.delete(existing)
            await commit(db)
            logger.info(f"Role removed from {user_id} by {user.user_id}")
        existing = None
    elif existing is not None:
        existing.role = AppRole(assignment.role.value)
        await commit(db)
        await db.refresh(existing)
        logger.info(f"Role of {user_id} changed to {existing.role.value} by {user.user_id}")
    else:
        existing = UserRole(user_id=user_id, role=AppRole(assignment.role.value))
        db.add(existing)
        await commit(db)
        await db.refresh(existing)
        logger.info(f"Role {existing.role.value} granted to {user_id} by {user.user_id}")

    profile = await db.scalar(select(Profile).where(Profile.id == user_id))
    return _user_with_role(user_id, profile, existing)
