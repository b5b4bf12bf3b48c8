"""Admin upload and maintenance responses."""
from __future__ import annotations

from pydantic import BaseModel, Field


class UploadTaskResponse(BaseModel):
    filename: str
    status: str
    object_path: str | None = None
    url: str | None = None
    document_id: str | None = None
    error: str | None = None


class UploadBatchResponse(BaseModel):
    status: str
    total: int
    uploaded: int
    skipped: int
    failures: list[str] = Field(default_factory=list)
    tasks: list[UploadTaskResponse] = Field(default_factory=list)


class FixResponse(BaseModel):
    status: str
    fixed: int
    skipped: int
    failed: int
