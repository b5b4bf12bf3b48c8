"""Response bodies for feed, relation and moderation endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .videos import VideoEntry


class VideoResponse(BaseModel):
    id: str
    url: str
    title: str | None = None
    tags: list[str] = Field(default_factory=list)
    hashtag_line: str = ""
    created_at: datetime | None = None
    poster: str | None = None

    @classmethod
    def from_entry(cls, entry: VideoEntry) -> "VideoResponse":
        return cls(
            id=entry.id,
            url=entry.url,
            title=entry.title,
            tags=list(entry.tags),
            hashtag_line=entry.hashtag_line,
            created_at=entry.created_at,
            poster=entry.poster,
        )


class FeedResponse(BaseModel):
    items: list[VideoResponse]
    total: int


class RelationStateResponse(BaseModel):
    video_id: str
    liked: bool
    saved: bool


class DeleteVideoResponse(BaseModel):
    video_id: str
    document_deleted: bool
    object_deleted: bool
    message: str
