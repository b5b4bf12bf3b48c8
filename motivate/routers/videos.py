"""Feed, saved list, like/save relations and admin delete."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..clients import get_remote_store
from ..clients.remote_store import Identity, RemoteStore, RemoteStoreError
from ..config import get_settings
from ..schemas import (
    DeleteVideoResponse,
    FeedResponse,
    RelationKind,
    RelationStateResponse,
    VideoEntry,
    VideoResponse,
)
from ..services import (
    AdminPolicy,
    PreferenceStore,
    VideoCard,
    get_admin_policy,
    get_current_identity,
    get_preference_store,
    list_relations,
    relation_exists,
    require_admin,
    set_relation_state,
)

router = APIRouter(prefix="/videos", tags=["videos"])

logger = logging.getLogger(__name__)

_RELATION_SEGMENTS = {"likes": RelationKind.LIKE, "saves": RelationKind.SAVED}


def _upstream_error(exc: RemoteStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.describe())


def _feed_response(entries: list[VideoEntry]) -> FeedResponse:
    return FeedResponse(items=[VideoResponse.from_entry(entry) for entry in entries], total=len(entries))


async def _load_video(store: RemoteStore, video_id: str) -> VideoEntry:
    collection = get_settings().videos_collection
    try:
        snapshot = await store.documents.get_document(f"{collection}/{video_id}")
    except RemoteStoreError as exc:
        raise _upstream_error(exc) from exc
    if not snapshot.exists:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return VideoEntry.from_document(snapshot)


async def _relation_state(store: RemoteStore, uid: str, video_id: str) -> RelationStateResponse:
    try:
        liked = await relation_exists(store.documents, RelationKind.LIKE, uid, video_id)
        saved = await relation_exists(store.documents, RelationKind.SAVED, uid, video_id)
    except RemoteStoreError as exc:
        raise _upstream_error(exc) from exc
    return RelationStateResponse(video_id=video_id, liked=liked, saved=saved)


@router.get("/feed", response_model=FeedResponse)
async def feed_endpoint(
    _identity: Identity = Depends(get_current_identity),
    store: RemoteStore = Depends(get_remote_store),
) -> FeedResponse:
    """Newest first, the same order the live subscription delivers."""

    try:
        snapshots = await store.documents.list_documents(
            get_settings().videos_collection, order_by="createdAt", descending=True
        )
    except RemoteStoreError as exc:
        raise _upstream_error(exc) from exc
    return _feed_response([VideoEntry.from_document(snapshot) for snapshot in snapshots])


@router.get("/saved", response_model=FeedResponse)
async def saved_endpoint(
    identity: Identity = Depends(get_current_identity),
    store: RemoteStore = Depends(get_remote_store),
) -> FeedResponse:
    try:
        entries = await list_relations(store.documents, RelationKind.SAVED, identity.uid)
    except RemoteStoreError as exc:
        raise _upstream_error(exc) from exc
    return _feed_response(entries)


@router.get("/{video_id}/relations", response_model=RelationStateResponse)
async def relations_endpoint(
    video_id: str,
    identity: Identity = Depends(get_current_identity),
    store: RemoteStore = Depends(get_remote_store),
) -> RelationStateResponse:
    return await _relation_state(store, identity.uid, video_id)


async def _apply_relation(
    segment: str,
    video_id: str,
    identity: Identity,
    store: RemoteStore,
    *,
    active: bool,
) -> RelationStateResponse:
    kind = _RELATION_SEGMENTS.get(segment)
    if kind is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown relation")

    if active:
        video = await _load_video(store, video_id)
    else:
        # Removing a relation never needs the video; orphans are allowed.
        video = VideoEntry(id=video_id, url="")
    try:
        await set_relation_state(store.documents, kind, identity.uid, video, active=active)
    except RemoteStoreError as exc:
        raise _upstream_error(exc) from exc
    return await _relation_state(store, identity.uid, video_id)


@router.post("/{video_id}/{segment}", response_model=RelationStateResponse)
async def add_relation_endpoint(
    video_id: str,
    segment: str,
    identity: Identity = Depends(get_current_identity),
    store: RemoteStore = Depends(get_remote_store),
) -> RelationStateResponse:
    return await _apply_relation(segment, video_id, identity, store, active=True)


@router.delete("/{video_id}/{segment}", response_model=RelationStateResponse)
async def remove_relation_endpoint(
    video_id: str,
    segment: str,
    identity: Identity = Depends(get_current_identity),
    store: RemoteStore = Depends(get_remote_store),
) -> RelationStateResponse:
    return await _apply_relation(segment, video_id, identity, store, active=False)


@router.delete("/{video_id}", response_model=DeleteVideoResponse)
async def delete_video_endpoint(
    video_id: str,
    identity: Identity = Depends(require_admin),
    store: RemoteStore = Depends(get_remote_store),
    policy: AdminPolicy = Depends(get_admin_policy),
    preferences: PreferenceStore = Depends(get_preference_store),
) -> DeleteVideoResponse:
    video = await _load_video(store, video_id)
    card = VideoCard(
        video,
        documents=store.documents,
        objects=store.objects,
        preferences=preferences,
        identity=identity,
        admin_policy=policy,
        collection=get_settings().videos_collection,
    )
    result = await card.delete()
    if not result.document_deleted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.message)
    logger.info("Admin %s deleted video %s", identity.uid, video_id)
    return DeleteVideoResponse(
        video_id=video_id,
        document_deleted=result.document_deleted,
        object_deleted=result.object_deleted,
        message=result.message,
    )


__all__ = ["router"]
