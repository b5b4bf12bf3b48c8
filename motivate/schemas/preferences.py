"""Schemas for the persisted playback preferences."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    muted: bool
    auto_advance: bool = Field(alias="autoScroll")


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    muted: bool | None = None
    auto_advance: bool | None = Field(default=None, alias="autoScroll")
