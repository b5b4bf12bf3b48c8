"""Pydantic models for feed documents and per-user relation records."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..clients.remote_store import SERVER_TIMESTAMP, DocumentSnapshot
from ..utils.tags import format_hashtags, normalize_tags


class RelationKind(str, Enum):
    LIKE = "likes"
    SAVED = "saved"

    @property
    def timestamp_field(self) -> str:
        return "likedAt" if self is RelationKind.LIKE else "savedAt"


class VideoEntry(BaseModel):
    """One item of the feed, normalized from whatever the store holds."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    url: str
    title: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    poster: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> list[str]:
        return normalize_tags(value if isinstance(value, (list, tuple)) else None)

    @classmethod
    def from_document(cls, snapshot: DocumentSnapshot) -> "VideoEntry":
        """Read a ``videos`` document, folding legacy ``tags`` into the canonical field."""

        data = snapshot.data or {}
        tags = data.get("hashtags") or data.get("tags") or []
        return cls(
            id=snapshot.id,
            url=str(data.get("url") or ""),
            title=data.get("title") or None,
            tags=tags,
            created_at=_as_datetime(data.get("createdAt")),
            poster=data.get("poster") or None,
        )

    @classmethod
    def from_relation(cls, snapshot: DocumentSnapshot) -> "VideoEntry":
        """Read a like/saved record back into a playable entry."""

        data = snapshot.data or {}
        return cls(
            id=str(data.get("videoId") or snapshot.id),
            url=str(data.get("url") or ""),
            title=data.get("title") or None,
            tags=data.get("tags") or [],
            created_at=_as_datetime(data.get("createdAt")),
            poster=data.get("poster") or None,
        )

    @property
    def hashtag_line(self) -> str:
        return format_hashtags(self.tags)


class NewVideoDocument(BaseModel):
    """Document written to the ``videos`` collection by the upload pipeline."""

    url: str
    title: str
    hashtags: list[str] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "hashtags": list(self.hashtags),
            "createdAt": SERVER_TIMESTAMP,
        }


class RelationRecord(BaseModel):
    """Denormalized copy of a video stored under a user's likes or saved list."""

    model_config = ConfigDict(populate_by_name=True)

    kind: RelationKind
    user_id: str
    video_id: str
    title: str = ""
    url: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    poster: str | None = None

    @classmethod
    def for_video(cls, kind: RelationKind, user_id: str, video: VideoEntry) -> "RelationRecord":
        return cls(
            kind=kind,
            user_id=user_id,
            video_id=video.id,
            title=video.title or "",
            url=video.url,
            tags=list(video.tags),
            created_at=video.created_at,
            poster=video.poster,
        )

    @property
    def path(self) -> str:
        return relation_path(self.kind, self.user_id, self.video_id)

    def to_document(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "url": self.url,
            "tags": list(self.tags),
            "createdAt": self.created_at if self.created_at is not None else SERVER_TIMESTAMP,
            self.kind.timestamp_field: SERVER_TIMESTAMP,
            "poster": self.poster,
        }


def relation_path(kind: RelationKind, user_id: str, video_id: str) -> str:
    return f"users/{user_id}/{kind.value}/{video_id}"


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


__all__ = ["RelationKind", "VideoEntry", "NewVideoDocument", "RelationRecord", "relation_path"]
