"""In-memory WebSocket broadcast of live feed snapshots."""
from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from typing import Any, Sequence

from fastapi import WebSocket

from ..clients import get_remote_store
from ..config import get_settings
from ..schemas.feed import VideoResponse
from ..schemas.videos import VideoEntry
from .feed_controller import FeedController
from .preferences import get_preference_store

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks active WebSocket connections and broadcasts JSON payloads."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def send(self, websocket: WebSocket, message: dict[str, Any]) -> None:
        await websocket.send_text(json.dumps(message, default=str))

    async def broadcast(self, message: dict[str, Any]) -> None:
        payload = json.dumps(message, default=str)
        async with self._lock:
            targets = list(self._connections)
        for connection in targets:
            try:
                await connection.send_text(payload)
            except Exception:
                logger.debug("Dropping feed socket after failed send", exc_info=True)
                await self.disconnect(connection)


def feed_snapshot_message(videos: Sequence[VideoEntry]) -> dict[str, Any]:
    return {
        "type": "feed_snapshot",
        "items": [VideoResponse.from_entry(video).model_dump(mode="json") for video in videos],
    }


class FeedBroadcaster:
    """Relays every snapshot of one shared feed subscription to all sockets."""

    def __init__(self, manager: WebSocketManager, controller: FeedController) -> None:
        self.manager = manager
        self.controller = controller
        self._tasks: set[asyncio.Task[None]] = set()
        controller.on_change(self._on_change)

    def start(self) -> None:
        self.controller.start()

    def stop(self) -> None:
        self.controller.close()

    def current_message(self) -> dict[str, Any]:
        return feed_snapshot_message(self.controller.videos)

    def _on_change(self, videos: list[VideoEntry]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.manager.broadcast(feed_snapshot_message(videos)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


feed_updates_manager = WebSocketManager()


@lru_cache(maxsize=1)
def get_feed_broadcaster() -> FeedBroadcaster:
    settings = get_settings()
    controller = FeedController(
        get_remote_store().documents,
        get_preference_store(),
        collection=settings.videos_collection,
        threshold=settings.active_card_threshold,
    )
    return FeedBroadcaster(feed_updates_manager, controller)


__all__ = [
    "FeedBroadcaster",
    "WebSocketManager",
    "feed_snapshot_message",
    "feed_updates_manager",
    "get_feed_broadcaster",
]
