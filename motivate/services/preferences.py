"""Cross-session playback preferences persisted on the client.

Every card reads and writes the same store; the last write wins. Values are
cached in memory for the hot paths (card activation) and written through to
the local database.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import create_session
from ..models import LocalPreference

logger = logging.getLogger(__name__)

MUTED_KEY = "muted"
AUTO_ADVANCE_KEY = "autoScroll"

DEFAULTS: dict[str, bool] = {
    MUTED_KEY: False,
    AUTO_ADVANCE_KEY: True,
}


def _encode(value: bool) -> str:
    return "1" if value else "0"


def _decode(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


class PreferenceStore:
    """Boolean preferences keyed by fixed names."""

    def __init__(self, session_factory: Callable[[], Session] = create_session) -> None:
        self._session_factory = session_factory
        self._cache: dict[str, bool] = {}

    def get_bool(self, key: str, default: bool | None = None) -> bool:
        if key in self._cache:
            return self._cache[key]

        fallback = DEFAULTS.get(key, False) if default is None else default
        session = self._session_factory()
        try:
            row = session.get(LocalPreference, key)
        except SQLAlchemyError:
            # Best-effort: playback still works with defaults.
            logger.warning("Could not read preference %s; using default", key)
            return fallback
        finally:
            session.close()

        decoded = _decode(row.value) if row is not None else None
        value = fallback if decoded is None else decoded
        self._cache[key] = value
        return value

    def set_bool(self, key: str, value: bool) -> bool:
        normalized = bool(value)
        self._cache[key] = normalized

        session = self._session_factory()
        try:
            row = session.get(LocalPreference, key)
            if row is None:
                session.add(LocalPreference(key=key, value=_encode(normalized)))
            else:
                row.value = _encode(normalized)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.warning("Could not persist preference %s; keeping it for this session only", key)
        finally:
            session.close()

        return normalized

    @property
    def muted(self) -> bool:
        return self.get_bool(MUTED_KEY)

    @muted.setter
    def muted(self, value: bool) -> None:
        self.set_bool(MUTED_KEY, value)

    @property
    def auto_advance(self) -> bool:
        return self.get_bool(AUTO_ADVANCE_KEY)

    @auto_advance.setter
    def auto_advance(self, value: bool) -> None:
        self.set_bool(AUTO_ADVANCE_KEY, value)

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_preference_store() -> PreferenceStore:
    return PreferenceStore()


__all__ = [
    "MUTED_KEY",
    "AUTO_ADVANCE_KEY",
    "DEFAULTS",
    "PreferenceStore",
    "get_preference_store",
]
