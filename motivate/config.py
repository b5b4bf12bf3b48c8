"""
Runtime configuration helpers for the Motivate feed controller and API.

Loads variables from the .env file located in the project root without
overriding values provided by the platform.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=False)


def _split_csv(raw: str | None) -> frozenset[str]:
    return frozenset(part.strip().lower() for part in (raw or "").split(",") if part.strip())


class Settings(BaseSettings):
    app_name: str = Field(default="Motivate", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")

    # Remote store selection
    backend: Literal["memory", "firebase"] = Field(default="memory", alias="MOTIVATE_BACKEND")
    object_backend: Literal["memory", "firebase", "spaces"] | None = Field(
        default=None, alias="MOTIVATE_OBJECT_BACKEND"
    )

    # Firebase REST adapter
    firebase_api_key: str | None = Field(default=None, alias="FIREBASE_API_KEY")
    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    firebase_storage_bucket: str | None = Field(default=None, alias="FIREBASE_STORAGE_BUCKET")
    firebase_timeout: float = Field(default=30.0, alias="FIREBASE_TIMEOUT")
    feed_poll_interval: float = Field(default=5.0, alias="MOTIVATE_FEED_POLL_INTERVAL")
    upload_chunk_size: int = Field(default=256 * 1024 * 4, alias="MOTIVATE_UPLOAD_CHUNK_SIZE")

    # DigitalOcean Spaces object store
    spaces_key: str | None = Field(default=None, alias="DO_SPACES_KEY")
    spaces_secret: str | None = Field(default=None, alias="DO_SPACES_SECRET")
    spaces_region: str | None = Field(default=None, alias="DO_SPACES_REGION")
    spaces_bucket: str | None = Field(default=None, alias="DO_SPACES_NAME")
    spaces_endpoint: str | None = Field(default=None, alias="DO_SPACES_ENDPOINT")

    # In-memory backend
    memory_token_secret: str = Field(default="motivate-local-dev", alias="MOTIVATE_MEMORY_TOKEN_SECRET")
    memory_bucket: str = Field(default="motivate-local", alias="MOTIVATE_MEMORY_BUCKET")

    # Authorization allow-lists (comma separated, build-time values)
    admin_emails_raw: str = Field(default="", alias="MOTIVATE_ADMIN_EMAILS")
    admin_uids_raw: str = Field(default="", alias="MOTIVATE_ADMIN_UIDS")

    # Client-local persisted preferences
    preferences_database_url: str = Field(
        default=f"sqlite+pysqlite:///{BASE_DIR / 'motivate_local.db'}",
        alias="MOTIVATE_PREFERENCES_DATABASE_URL",
    )

    # Feed behaviour
    videos_collection: str = Field(default="videos", alias="MOTIVATE_VIDEOS_COLLECTION")
    active_card_threshold: float = Field(default=0.6, alias="MOTIVATE_ACTIVE_THRESHOLD", gt=0.0, le=1.0)
    canonical_video_content_type: str = Field(default="video/mp4", alias="MOTIVATE_VIDEO_CONTENT_TYPE")
    sign_in_path: str = Field(default="/login", alias="MOTIVATE_SIGN_IN_PATH")
    home_path: str = Field(default="/mainmenu", alias="MOTIVATE_HOME_PATH")

    # Background video pool
    background_video_dir: Path = Field(default=BASE_DIR / "public" / "bg", alias="MOTIVATE_BACKGROUND_DIR")
    background_poster: str = Field(default="/bg/fallback.jpg", alias="MOTIVATE_BACKGROUND_POSTER")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def admin_emails(self) -> frozenset[str]:
        return _split_csv(self.admin_emails_raw)

    @property
    def admin_uids(self) -> frozenset[str]:
        # uids are case sensitive
        return frozenset(part.strip() for part in self.admin_uids_raw.split(",") if part.strip())

    @property
    def resolved_object_backend(self) -> str:
        return self.object_backend or self.backend


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
