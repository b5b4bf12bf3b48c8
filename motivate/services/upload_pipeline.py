"""Admin batch upload: object store first, then one feed document per file.

Files go through one at a time. Each file either ends with a feed document
or with a failure line; a failure never stops the rest of the batch. Callers
get status text and a progress fraction through callbacks and a summary at
the end.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable

from ..clients.remote_store import DocumentStore, Identity, ObjectStore, RemoteStoreError
from ..schemas.videos import NewVideoDocument
from ..utils.storage_paths import build_object_path, default_title, sanitize_filename
from ..utils.tags import parse_hashtags
from .session_guard import AdminPolicy

logger = logging.getLogger(__name__)

VIDEO_TYPE_PREFIX = "video/"
DEFAULT_CONTENT_TYPE = "video/mp4"

STATUS_UPLOADING = "Uploading…"
STATUS_EMPTY_SELECTION = "Select at least one video to upload."


@dataclass
class UploadItem:
    """One selected file with its editable title and hashtag text."""

    filename: str
    data: bytes | BinaryIO
    content_type: str | None = None
    title: str | None = None
    hashtags_text: str = ""

    @property
    def is_video(self) -> bool:
        return bool(self.content_type) and self.content_type.lower().startswith(VIDEO_TYPE_PREFIX)

    @property
    def resolved_title(self) -> str:
        title = default_title(self.filename) if self.title is None else self.title
        return title.strip() or sanitize_filename(self.filename)


@dataclass
class UploadTask:
    item: UploadItem
    index: int
    object_path: str | None = None
    transferred: int = 0
    total: int = 0
    url: str | None = None
    document_id: str | None = None
    error: str | None = None
    skipped: bool = False

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.transferred / self.total)

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        if self.error is not None:
            return "failed"
        if self.document_id is not None:
            return "uploaded"
        return "pending"


@dataclass
class UploadSummary:
    total: int
    uploaded: int = 0
    skipped: int = 0
    failures: list[str] = field(default_factory=list)
    tasks: list[UploadTask] = field(default_factory=list)
    validation_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.validation_error is None and not self.failures

    @property
    def status(self) -> str:
        if self.validation_error is not None:
            return self.validation_error
        if self.failures:
            return f"Done with errors ({self.uploaded}/{self.total}). Last error: {self.failures[-1]}"
        return f"Done. Videos added. ({self.uploaded}/{self.total})"


def _failure_line(stage: str, filename: str, exc: RemoteStoreError) -> str:
    return f"{stage} failed for {filename}: {exc.describe()}"


class UploadPipeline:
    def __init__(
        self,
        documents: DocumentStore,
        objects: ObjectStore,
        *,
        collection: str = "videos",
        admin_policy: AdminPolicy | None = None,
        on_status: Callable[[str], None] | None = None,
        on_progress: Callable[[float], None] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._documents = documents
        self._objects = objects
        self._collection = collection
        self._admin_policy = admin_policy
        self._on_status = on_status
        self._on_progress = on_progress
        self._clock = clock or (lambda: int(time.time() * 1000))

    def _status(self, message: str) -> None:
        if self._on_status is not None:
            self._on_status(message)

    def _progress(self, fraction: float) -> None:
        if self._on_progress is not None:
            self._on_progress(fraction)

    async def run(self, items: Iterable[UploadItem], *, identity: Identity | None = None) -> UploadSummary:
        if self._admin_policy is not None:
            self._admin_policy.require(identity)

        selection = list(items)
        if not selection:
            self._status(STATUS_EMPTY_SELECTION)
            return UploadSummary(total=0, validation_error=STATUS_EMPTY_SELECTION)

        summary = UploadSummary(total=len(selection))
        self._status(STATUS_UPLOADING)
        self._progress(0.0)

        for index, item in enumerate(selection):
            task = UploadTask(item=item, index=index)
            summary.tasks.append(task)

            if not item.is_video:
                logger.warning("Skipping non-video upload %s (%s)", item.filename, item.content_type)
                task.skipped = True
                summary.skipped += 1
                continue

            if await self._upload_one(task, summary):
                summary.uploaded += 1
                self._status(f"Uploaded {summary.uploaded}/{summary.total}")

        self._status(summary.status)
        self._progress(0.0)
        logger.info(
            "Upload batch finished: %d/%d uploaded, %d skipped, %d failed",
            summary.uploaded,
            summary.total,
            summary.skipped,
            len(summary.failures),
        )
        return summary

    async def _upload_one(self, task: UploadTask, summary: UploadSummary) -> bool:
        item = task.item
        task.object_path = build_object_path(item.filename, task.index, now_ms=self._clock())
        content_type = item.content_type or DEFAULT_CONTENT_TYPE

        def _on_chunk(transferred: int, total: int) -> None:
            task.transferred = transferred
            task.total = total
            self._progress(task.fraction)

        def _fail(stage: str, exc: RemoteStoreError) -> bool:
            line = _failure_line(stage, item.filename, exc)
            logger.warning("%s", line)
            task.error = line
            summary.failures.append(line)
            self._status(line)
            return False

        try:
            await self._objects.upload(task.object_path, item.data, content_type=content_type, on_progress=_on_chunk)
        except RemoteStoreError as exc:
            return _fail("Storage upload", exc)

        try:
            await self._objects.update_content_type(task.object_path, content_type)
            task.url = await self._objects.download_url(task.object_path)
        except RemoteStoreError as exc:
            return _fail("Storage finalize", exc)

        document = NewVideoDocument(
            url=task.url,
            title=item.resolved_title,
            hashtags=parse_hashtags(item.hashtags_text),
        )
        try:
            task.document_id = await self._documents.add_document(self._collection, document.to_document())
        except RemoteStoreError as exc:
            return _fail("Document write", exc)
        return True


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "STATUS_EMPTY_SELECTION",
    "STATUS_UPLOADING",
    "UploadItem",
    "UploadPipeline",
    "UploadSummary",
    "UploadTask",
]
