"""
Authentication & Role-Based Authorization

Staff requests carry ``Authorization: Bearer <jwt>``. The token is an HS256
JWT whose ``sub`` claim is the user id; the user's single role is read from
the ``user_roles`` table. Authorization is purely role-based:

    staff    < manager < admin

Usage:
    @router.post("/api/menu")
    async def create(..., user: CurrentUser = Depends(require_roles(MANAGERS))):
        ...
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import AuthenticationRequired, PermissionDenied
from app.database import get_db
from app.models import AppRole, UserRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ALL_ROLES = (AppRole.STAFF, AppRole.MANAGER, AppRole.ADMIN)
MANAGERS = (AppRole.MANAGER, AppRole.ADMIN)
ADMINS = (AppRole.ADMIN,)


@dataclass
class CurrentUser:
    """The authenticated caller."""
    user_id: uuid.UUID
    role: Optional[AppRole]

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGERS

    @property
    def is_admin(self) -> bool:
        return self.role == AppRole.ADMIN


def create_access_token(user_id: uuid.UUID, ttl_minutes: Optional[int] = None) -> str:
    """Mint a bearer token for ``user_id`` signed with the service secret."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.auth_token_ttl_minutes
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a bearer token and return its subject.

    Raises:
        AuthenticationRequired: signature, expiry, audience or subject invalid
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.auth_jwt_audience,
        )
        return uuid.UUID(claims["sub"])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthenticationRequired()
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        logger.warning(f"Rejected invalid token: {e}")
        raise AuthenticationRequired()


async def get_user_role(db: AsyncSession, user_id: uuid.UUID) -> Optional[AppRole]:
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    return result.scalar_one_or_none()


async def resolve_user(db: AsyncSession, token: Optional[str]) -> CurrentUser:
    """Authenticate a raw token (HTTP header or WebSocket query string)."""
    if not token:
        raise AuthenticationRequired()
    user_id = decode_access_token(token)
    role = await get_user_role(db, user_id)
    return CurrentUser(user_id=user_id, role=role)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
    return await resolve_user(db, token)


def require_roles(allowed: tuple[AppRole, ...] = ALL_ROLES):
    """Dependency factory: the caller must hold one of ``allowed``."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.info(f"User {user.user_id} with role {user.role} denied (needs {allowed})")
            raise PermissionDenied()
        return user

    return dependency
