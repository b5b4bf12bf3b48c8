"""Shared fixtures: an in-memory remote store and a throwaway preference database."""
from __future__ import annotations

import asyncio
import os
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Configure the application before any motivate module reads settings.
os.environ["MOTIVATE_BACKEND"] = "memory"
os.environ.setdefault("MOTIVATE_PREFERENCES_DATABASE_URL", "sqlite+pysqlite:///./test_motivate.db")
os.environ.setdefault("MOTIVATE_MEMORY_TOKEN_SECRET", "test-secret-key")
os.environ.setdefault("MOTIVATE_ADMIN_EMAILS", "Admin@Motivate.test")
os.environ.setdefault("MOTIVATE_ADMIN_UIDS", "root-uid")

from motivate import models  # noqa: E402,F401
from motivate.clients.memory import (  # noqa: E402
    InMemoryAuthClient,
    InMemoryDocumentStore,
    InMemoryObjectStore,
)
from motivate.clients.remote_store import Identity, RemoteStore  # noqa: E402
from motivate.database import Base  # noqa: E402
from motivate.services.preferences import PreferenceStore  # noqa: E402
from motivate.services.session_guard import AdminPolicy  # noqa: E402
from motivate.services.video_card import PlaybackRejected  # noqa: E402


class FakePlayer:
    """Scriptable stand-in for a video element."""

    def __init__(self, *, reject_sound: bool = False, reject_all: bool = False) -> None:
        self.reject_sound = reject_sound
        self.reject_all = reject_all
        self.position = 0.0
        self.muted: bool | None = None
        self.playing = False
        self.plays: list[bool] = []
        self.gate: asyncio.Event | None = None

    async def play(self, *, muted: bool) -> None:
        self.plays.append(muted)
        if self.gate is not None:
            await self.gate.wait()
        if self.reject_all or (self.reject_sound and not muted):
            raise PlaybackRejected("autoplay blocked")
        self.muted = muted
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, position: float) -> None:
        self.position = position

    def set_muted(self, muted: bool) -> None:
        self.muted = muted


ADMIN = Identity(uid="admin-uid", email="admin@motivate.test", id_token=None)
VIEWER = Identity(uid="viewer-uid", email="viewer@motivate.test", id_token=None)


@pytest.fixture
def remote() -> RemoteStore:
    return RemoteStore(
        auth=InMemoryAuthClient(token_secret="test-secret-key"),
        documents=InMemoryDocumentStore(),
        objects=InMemoryObjectStore(bucket="motivate-test", chunk_size=4),
    )


@pytest.fixture
def preferences() -> Iterator[PreferenceStore]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, future=True, expire_on_commit=False)
    yield PreferenceStore(factory)
    engine.dispose()


@pytest.fixture
def make_player():
    return FakePlayer


@pytest.fixture
def admin_policy() -> AdminPolicy:
    return AdminPolicy.from_values(emails=["Admin@Motivate.test"], uids=["root-uid"])


@pytest.fixture
def admin() -> Identity:
    return ADMIN


@pytest.fixture
def viewer() -> Identity:
    return VIEWER
