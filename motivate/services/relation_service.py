"""Per-user like/saved relation records stored beside the viewer's profile."""
from __future__ import annotations

from typing import Callable

from ..clients.remote_store import DocumentStore, Unsubscribe
from ..schemas.videos import RelationKind, RelationRecord, VideoEntry, relation_path


async def relation_exists(documents: DocumentStore, kind: RelationKind, user_id: str, video_id: str) -> bool:
    """The record's existence is the relation; there is no flag to read."""

    snapshot = await documents.get_document(relation_path(kind, user_id, video_id))
    return snapshot.exists


async def create_relation(documents: DocumentStore, kind: RelationKind, user_id: str, video: VideoEntry) -> None:
    record = RelationRecord.for_video(kind, user_id, video)
    await documents.set_document(record.path, record.to_document())


async def delete_relation(documents: DocumentStore, kind: RelationKind, user_id: str, video_id: str) -> None:
    await documents.delete_document(relation_path(kind, user_id, video_id))


async def set_relation_state(
    documents: DocumentStore,
    kind: RelationKind,
    user_id: str,
    video: VideoEntry,
    *,
    active: bool,
) -> bool:
    if active:
        await create_relation(documents, kind, user_id, video)
    else:
        await delete_relation(documents, kind, user_id, video.id)
    return active


async def list_relations(documents: DocumentStore, kind: RelationKind, user_id: str) -> list[VideoEntry]:
    snapshots = await documents.list_documents(
        f"users/{user_id}/{kind.value}", order_by=kind.timestamp_field, descending=True
    )
    return [VideoEntry.from_relation(snapshot) for snapshot in snapshots]


def subscribe_saved(
    documents: DocumentStore,
    user_id: str | None,
    listener: Callable[[list[VideoEntry]], None],
) -> Unsubscribe | None:
    """Stream the viewer's saved list, newest save first. No uid, no subscription."""

    if not user_id:
        return None
    kind = RelationKind.SAVED

    def _on_snapshot(snapshots) -> None:
        listener([VideoEntry.from_relation(snapshot) for snapshot in snapshots])

    return documents.subscribe(
        f"users/{user_id}/{kind.value}",
        _on_snapshot,
        order_by=kind.timestamp_field,
        descending=True,
    )


__all__ = [
    "relation_exists",
    "create_relation",
    "delete_relation",
    "set_relation_state",
    "list_relations",
    "subscribe_saved",
]
