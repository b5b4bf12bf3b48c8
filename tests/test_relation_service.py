"""Relation records and the saved feed."""
from __future__ import annotations

import asyncio

import pytest

from motivate.schemas import RelationKind, VideoEntry
from motivate.services.relation_service import list_relations, set_relation_state, subscribe_saved


async def _drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_saved_feed_orders_by_save_time(remote, viewer) -> None:
    first = VideoEntry(id="v1", url="https://cdn/1.mp4", title="One", tags=["grit"])
    second = VideoEntry(id="v2", url="https://cdn/2.mp4", title="Two")
    await set_relation_state(remote.documents, RelationKind.SAVED, viewer.uid, first, active=True)
    await set_relation_state(remote.documents, RelationKind.SAVED, viewer.uid, second, active=True)

    entries = await list_relations(remote.documents, RelationKind.SAVED, viewer.uid)
    assert [entry.id for entry in entries] == ["v2", "v1"]
    assert entries[1].tags == ["grit"]


@pytest.mark.asyncio
async def test_saved_subscription_follows_changes(remote, viewer) -> None:
    updates: list[list[str]] = []
    unsubscribe = subscribe_saved(remote.documents, viewer.uid, lambda items: updates.append([i.id for i in items]))
    video = VideoEntry(id="v1", url="https://cdn/1.mp4")

    await set_relation_state(remote.documents, RelationKind.SAVED, viewer.uid, video, active=True)
    await _drain()
    assert updates[-1] == ["v1"]

    await set_relation_state(remote.documents, RelationKind.SAVED, viewer.uid, video, active=False)
    await _drain()
    assert updates[-1] == []
    unsubscribe()


def test_no_uid_means_no_subscription(remote) -> None:
    assert subscribe_saved(remote.documents, None, lambda items: None) is None
    assert remote.documents.subscription_count == 0
