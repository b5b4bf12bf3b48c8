"""Client-local key/value preferences (mute, auto-scroll)."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from motivate.database import Base


class LocalPreference(Base):
    __tablename__ = "local_preferences"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


__all__ = ["LocalPreference"]
