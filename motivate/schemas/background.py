"""Schema for the landing-page background choice."""
from __future__ import annotations

from pydantic import BaseModel


class BackgroundResponse(BaseModel):
    mode: str
    source: str | None = None
    poster: str
    display: str | None = None
    pool_size: int = 0
