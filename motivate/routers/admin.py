"""Admin-only batch upload and content-type maintenance."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ..clients import get_remote_store
from ..clients.remote_store import Identity, RemoteStore
from ..config import get_settings
from ..schemas import FixResponse, UploadBatchResponse, UploadTaskResponse
from ..services import UploadItem, UploadPipeline, fix_existing_videos, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _nth(values: list[str] | None, index: int) -> str | None:
    if not values or index >= len(values):
        return None
    return values[index]


@router.post("/uploads", response_model=UploadBatchResponse)
async def upload_videos_endpoint(
    files: list[UploadFile] | None = File(default=None),
    titles: list[str] | None = Form(default=None),
    hashtags: list[str] | None = Form(default=None),
    identity: Identity = Depends(require_admin),
    store: RemoteStore = Depends(get_remote_store),
) -> UploadBatchResponse:
    """Upload each file in order; per-file titles and hashtag text match by position."""

    items: list[UploadItem] = []
    for index, upload in enumerate(files or []):
        items.append(
            UploadItem(
                filename=(upload.filename or "").strip(),
                data=await upload.read(),
                content_type=upload.content_type,
                title=_nth(titles, index),
                hashtags_text=_nth(hashtags, index) or "",
            )
        )

    pipeline = UploadPipeline(store.documents, store.objects, collection=get_settings().videos_collection)
    summary = await pipeline.run(items, identity=identity)
    if summary.validation_error is not None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=summary.validation_error)

    return UploadBatchResponse(
        status=summary.status,
        total=summary.total,
        uploaded=summary.uploaded,
        skipped=summary.skipped,
        failures=list(summary.failures),
        tasks=[
            UploadTaskResponse(
                filename=task.item.filename,
                status=task.status,
                object_path=task.object_path,
                url=task.url,
                document_id=task.document_id,
                error=task.error,
            )
            for task in summary.tasks
        ],
    )


@router.post("/fix", response_model=FixResponse)
async def fix_videos_endpoint(
    identity: Identity = Depends(require_admin),
    store: RemoteStore = Depends(get_remote_store),
) -> FixResponse:
    settings = get_settings()
    summary = await fix_existing_videos(
        store.documents,
        store.objects,
        collection=settings.videos_collection,
        content_type=settings.canonical_video_content_type,
    )
    if summary.error is not None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=summary.status)
    return FixResponse(status=summary.status, fixed=summary.fixed, skipped=summary.skipped, failed=summary.failed)


__all__ = ["router"]
