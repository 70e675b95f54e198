"""
Helpers shared by the API routers.
"""

import enum
import logging
import uuid
from datetime import date, datetime, time
from typing import Any, Optional, Type, TypeVar

from fastapi import Request
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.realtime import ChangeEvent, ChangeType, get_broker

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def client_address(request: Request) -> str:
    """
    Best guess at the caller's network address.

    First entry of X-Forwarded-For, then X-Real-IP, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def get_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    obj_id: uuid.UUID,
    label: str = "Item",
) -> ModelT:
    obj = await db.scalar(select(model).where(model.id == obj_id))
    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def apply_changes(obj: Any, changes: dict[str, Any]) -> None:
    """Copy a partial update onto an ORM row."""
    for field, value in changes.items():
        if isinstance(value, enum.Enum):
            value = value.value
        setattr(obj, field, value)


async def commit(db: AsyncSession) -> None:
    """Commit, rolling back before the error propagates."""
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


async def save(db: AsyncSession, obj: Any) -> Any:
    """Commit pending changes and reload ``obj`` (server-side timestamps)."""
    await commit(db)
    await db.refresh(obj)
    return obj


async def remove(db: AsyncSession, obj: Any) -> None:
    await db.delete(obj)
    await commit(db)


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def row_payload(obj: Any) -> dict[str, Any]:
    """JSON-ready column values of an ORM row."""
    return {
        attr.key: _plain(getattr(obj, attr.key))
        for attr in inspect(obj).mapper.column_attrs
    }


def publish_change(
    table: str,
    event_type: ChangeType,
    new: Optional[dict[str, Any]] = None,
    old: Optional[dict[str, Any]] = None,
) -> None:
    get_broker().publish(ChangeEvent(
        table=table,
        event_type=event_type,
        new=new or {},
        old=old or {},
    ))
