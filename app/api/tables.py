"""
Floor table endpoints.

Table numbers are unique. Deleting a table never checks for open orders or
reservations that mention its number.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import (
    apply_changes,
    get_or_404,
    publish_change,
    remove,
    row_payload,
    save,
)
from app.core.errors import Conflict
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import FloorTable
from app.realtime import ChangeType
from app.schemas import (
    FloorTableCreate,
    FloorTableResponse,
    FloorTableUpdate,
    TableStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tables", tags=["Floor"])

TABLE = "floor_tables"
DUPLICATE_NUMBER = "A table with this number already exists"


async def _ensure_number_free(
    db: AsyncSession,
    table_number: int,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    query = select(FloorTable.id).where(FloorTable.table_number == table_number)
    if exclude_id is not None:
        query = query.where(FloorTable.id != exclude_id)
    if await db.scalar(query) is not None:
        raise Conflict(DUPLICATE_NUMBER)


async def _save_table(db: AsyncSession, table: FloorTable) -> FloorTable:
    # The pre-check can race with a concurrent insert; the constraint decides.
    try:
        return await save(db, table)
    except IntegrityError:
        raise Conflict(DUPLICATE_NUMBER)


@router.get("", response_model=List[FloorTableResponse])
async def list_tables(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[FloorTableResponse]:
    result = await db.execute(select(FloorTable).order_by(FloorTable.table_number))
    return [FloorTableResponse.model_validate(t) for t in result.scalars().all()]


@router.post("", response_model=FloorTableResponse, status_code=201)
async def create_table(
    data: FloorTableCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> FloorTableResponse:
    await _ensure_number_free(db, data.table_number)

    table = FloorTable(**data.model_dump())
    db.add(table)
    await _save_table(db, table)

    logger.info(f"Table {table.table_number} created by {user.user_id}")
    publish_change(TABLE, ChangeType.INSERT, new=row_payload(table))
    return FloorTableResponse.model_validate(table)


@router.patch("/{table_id}", response_model=FloorTableResponse)
async def update_table(
    table_id: uuid.UUID,
    data: FloorTableUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> FloorTableResponse:
    table = await get_or_404(db, FloorTable, table_id, "Table")
    changes = data.model_dump(exclude_unset=True)
    if changes.get("table_number") is not None:
        await _ensure_number_free(db, changes["table_number"], exclude_id=table_id)

    old = row_payload(table)
    apply_changes(table, changes)
    await _save_table(db, table)

    publish_change(TABLE, ChangeType.UPDATE, new=row_payload(table), old=old)
    return FloorTableResponse.model_validate(table)


@router.patch("/{table_id}/status", response_model=FloorTableResponse)
async def update_table_status(
    table_id: uuid.UUID,
    update: TableStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> FloorTableResponse:
    table = await get_or_404(db, FloorTable, table_id, "Table")
    old = row_payload(table)

    apply_changes(table, {"status": update.status})
    await save(db, table)

    logger.info(f"Table {table.table_number} -> {table.status.value}")
    publish_change(TABLE, ChangeType.UPDATE, new=row_payload(table), old=old)
    return FloorTableResponse.model_validate(table)


@router.delete("/{table_id}")
async def delete_table(
    table_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    table = await get_or_404(db, FloorTable, table_id, "Table")
    old = row_payload(table)
    await remove(db, table)

    logger.info(f"Table {old['table_number']} deleted by {user.user_id}")
    publish_change(TABLE, ChangeType.DELETE, old=old)
    return {"success": True}
