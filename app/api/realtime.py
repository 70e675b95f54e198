"""
WebSocket change stream.

    ws://host/ws/orders?token=<jwt>
    ws://host/ws/floor_tables?token=<jwt>

Each committed insert/update/delete on the table is pushed as
``{"table", "eventType", "new", "old", "occurred_at"}``. Payloads are hints;
clients refetch rather than patching from them.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.errors import AuthenticationRequired
from app.core.security import resolve_user
from app.database import async_session_maker
from app.realtime import ChangeEvent, get_broker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

STREAMED_TABLES = ("orders", "floor_tables")


async def _authorize(token: Optional[str]) -> bool:
    async with async_session_maker() as db:
        try:
            user = await resolve_user(db, token)
        except AuthenticationRequired:
            return False
    return user.role is not None


@router.websocket("/ws/{table}")
async def change_stream(
    websocket: WebSocket,
    table: str,
    token: Optional[str] = Query(None),
) -> None:
    if table not in STREAMED_TABLES or not await _authorize(token):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # Subscribe before accepting so nothing committed after the handshake is missed.
    subscription, queue = get_broker().open_queue(table)
    await websocket.accept()
    logger.info(f"Change stream opened for {table}")

    async def watch_disconnect() -> None:
        # Incoming frames are ignored; only the disconnect matters.
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            await queue.put(None)

    watcher = asyncio.create_task(watch_disconnect())

    try:
        with subscription:
            while True:
                event: Optional[ChangeEvent] = await queue.get()
                if event is None:
                    break
                await websocket.send_json(event.to_dict())
    except WebSocketDisconnect:
        pass
    finally:
        watcher.cancel()
        logger.info(f"Change stream closed for {table}")
