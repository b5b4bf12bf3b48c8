"""Admin sweep that forces the canonical content type on every feed object."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..clients.remote_store import DocumentStore, Identity, ObjectStore, RemoteStoreError
from ..utils.storage_paths import storage_path_from_url
from .session_guard import AdminPolicy

logger = logging.getLogger(__name__)

CANONICAL_CONTENT_TYPE = "video/mp4"
STATUS_FIXING = "Fixing existing videos…"


@dataclass
class FixSummary:
    fixed: int = 0
    skipped: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return f"Fix error: {self.error}"
        return f"Fix complete. Fixed {self.fixed}, skipped {self.skipped}, failed {self.failed}."


def resolve_object_path(objects: ObjectStore, url: str | None) -> str | None:
    """Reference the object behind ``url``, falling back to the encoded ``/o/`` segment."""

    if not url:
        return None
    try:
        return objects.ref_from_url(url)
    except RemoteStoreError:
        return storage_path_from_url(url)


async def fix_existing_videos(
    documents: DocumentStore,
    objects: ObjectStore,
    *,
    collection: str = "videos",
    content_type: str = CANONICAL_CONTENT_TYPE,
    identity: Identity | None = None,
    admin_policy: AdminPolicy | None = None,
    on_status: Callable[[str], None] | None = None,
) -> FixSummary:
    if admin_policy is not None:
        admin_policy.require(identity)

    def _status(message: str) -> None:
        if on_status is not None:
            on_status(message)

    _status(STATUS_FIXING)
    summary = FixSummary()
    try:
        snapshots = await documents.list_documents(collection)
    except RemoteStoreError as exc:
        logger.exception("Listing %s for the content-type sweep failed", collection)
        summary.error = exc.message
        _status(summary.status)
        return summary

    for snapshot in snapshots:
        url = (snapshot.data or {}).get("url")
        path = resolve_object_path(objects, url if isinstance(url, str) else None)
        if path is None:
            summary.skipped += 1
            continue
        try:
            await objects.update_content_type(path, content_type)
        except RemoteStoreError as exc:
            logger.warning("Content-type update failed for %s: %s", path, exc.describe())
            summary.failed += 1
            continue
        summary.fixed += 1

    logger.info(
        "Content-type sweep: fixed=%d skipped=%d failed=%d", summary.fixed, summary.skipped, summary.failed
    )
    _status(summary.status)
    return summary


__all__ = ["CANONICAL_CONTENT_TYPE", "FixSummary", "fix_existing_videos", "resolve_object_path"]
