"""WebSocket fan-out of feed snapshots."""
from __future__ import annotations

import asyncio
import json

import pytest

from motivate.clients.remote_store import SERVER_TIMESTAMP
from motivate.schemas import VideoEntry
from motivate.services.feed_controller import FeedController
from motivate.services.realtime import FeedBroadcaster, WebSocketManager, feed_snapshot_message


class FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, payload: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(payload))


def test_snapshot_message_shape() -> None:
    message = feed_snapshot_message([VideoEntry(id="v1", url="https://cdn/v1.mp4", title="Rise", tags=["grit"])])
    assert message["type"] == "feed_snapshot"
    assert message["items"][0]["id"] == "v1"
    assert message["items"][0]["hashtag_line"] == "#grit"


@pytest.mark.asyncio
async def test_broadcast_drops_broken_sockets() -> None:
    manager = WebSocketManager()
    healthy, broken = FakeSocket(), FakeSocket(broken=True)
    await manager.connect(healthy)
    await manager.connect(broken)
    assert healthy.accepted
    assert manager.connection_count == 2

    await manager.broadcast({"type": "pong"})

    assert healthy.sent == [{"type": "pong"}]
    assert manager.connection_count == 1


@pytest.mark.asyncio
async def test_broadcaster_relays_feed_changes(remote, preferences) -> None:
    manager = WebSocketManager()
    socket = FakeSocket()
    await manager.connect(socket)
    broadcaster = FeedBroadcaster(manager, FeedController(remote.documents, preferences))
    broadcaster.start()

    await remote.documents.add_document(
        "videos", {"url": "https://cdn/a.mp4", "title": "a", "hashtags": [], "createdAt": SERVER_TIMESTAMP}
    )
    for _ in range(6):
        await asyncio.sleep(0)

    assert socket.sent[-1]["type"] == "feed_snapshot"
    assert [item["title"] for item in socket.sent[-1]["items"]] == ["a"]
    assert broadcaster.current_message() == socket.sent[-1]
    broadcaster.stop()
    assert remote.documents.subscription_count == 0
