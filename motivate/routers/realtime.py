"""WebSocket endpoint that pushes live feed snapshots."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.realtime import get_feed_broadcaster

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/feed")
async def feed_updates(websocket: WebSocket) -> None:
    """Send the current feed on connect, then every new snapshot."""

    broadcaster = get_feed_broadcaster()
    manager = broadcaster.manager
    await manager.connect(websocket)
    broadcaster.start()
    logger.info("Feed socket connected from %s", websocket.client)
    try:
        if broadcaster.controller.loaded:
            await manager.send(websocket, broadcaster.current_message())
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"type": raw}
            if not isinstance(payload, dict):
                payload = {}

            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                await manager.send(websocket, {"type": "pong"})
            elif message_type == "snapshot":
                await manager.send(websocket, broadcaster.current_message())
    finally:
        await manager.disconnect(websocket)
        logger.info("Feed socket disconnected from %s", websocket.client)


__all__ = ["router"]
