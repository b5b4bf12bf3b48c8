"""Per-card playback, mute, like/save and admin delete state."""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from ..clients.remote_store import AuthError, DocumentStore, Identity, ObjectStore, RemoteStoreError
from ..schemas.videos import RelationKind, VideoEntry
from ..utils.storage_paths import storage_path_from_url
from .preferences import PreferenceStore
from .relation_service import relation_exists, set_relation_state
from .session_guard import AdminPolicy

logger = logging.getLogger(__name__)


class PlaybackRejected(RuntimeError):
    """Raised by a player when the environment refuses to start playback."""


class CardPlayer(Protocol):
    async def play(self, *, muted: bool) -> None: ...

    def pause(self) -> None: ...

    def seek(self, position: float) -> None: ...

    def set_muted(self, muted: bool) -> None: ...


class _DetachedPlayer:
    """Stand-in used before a card is bound to a real element."""

    async def play(self, *, muted: bool) -> None:
        return None

    def pause(self) -> None:
        return None

    def seek(self, position: float) -> None:
        return None

    def set_muted(self, muted: bool) -> None:
        return None


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class ToggleState(str, Enum):
    OFF = "off"
    ON = "on"
    PENDING = "pending"


class RelationToggle:
    """Optimistic on/off switch backed by a remote create-or-delete.

    The local value flips immediately. A single in-flight writer then drives
    the remote record toward the latest requested value, so rapid repeated
    toggles collapse onto whatever the user ended on. A rejected write rolls
    the local value back to the last state the store acknowledged.
    """

    def __init__(
        self,
        *,
        load: Callable[[], Awaitable[bool]],
        write: Callable[[bool], Awaitable[object]],
        name: str = "relation",
    ) -> None:
        self._load = load
        self._write = write
        self.name = name
        self.value = False
        self.confirmed = False
        self.pending = False
        self.error: str | None = None

    @property
    def state(self) -> ToggleState:
        if self.pending:
            return ToggleState.PENDING
        return ToggleState.ON if self.value else ToggleState.OFF

    async def load(self) -> bool:
        try:
            exists = await self._load()
        except RemoteStoreError as exc:
            logger.warning("Could not read %s state: %s", self.name, exc.describe())
            self.error = exc.message
            return self.value
        if not self.pending:
            self.value = self.confirmed = exists
        return self.value

    async def toggle(self) -> bool:
        self.value = not self.value
        self.error = None
        if self.pending:
            return self.value

        self.pending = True
        try:
            while self.value != self.confirmed:
                target = self.value
                try:
                    await self._write(target)
                except RemoteStoreError as exc:
                    logger.warning("Reverting %s toggle: %s", self.name, exc.describe())
                    self.error = exc.message
                    self.value = self.confirmed
                    break
                self.confirmed = target
        finally:
            self.pending = False
        return self.value


@dataclass(frozen=True)
class DeletionResult:
    document_deleted: bool
    object_deleted: bool
    message: str


class VideoCard:
    """State machine for one feed item."""

    def __init__(
        self,
        video: VideoEntry,
        *,
        documents: DocumentStore,
        objects: ObjectStore,
        preferences: PreferenceStore,
        identity: Identity | None = None,
        admin_policy: AdminPolicy | None = None,
        player: CardPlayer | None = None,
        on_ended: Callable[[], object] | None = None,
        collection: str = "videos",
    ) -> None:
        self.video = video
        self._documents = documents
        self._objects = objects
        self._preferences = preferences
        self._identity = identity
        self._admin_policy = admin_policy or AdminPolicy()
        self._player: CardPlayer = player or _DetachedPlayer()
        self._on_ended = on_ended
        self._collection = collection

        self.playback = PlaybackState.IDLE
        self.active = False
        self.force_muted = False
        self.mounted = False

        self.like = self._relation(RelationKind.LIKE)
        self.saved = self._relation(RelationKind.SAVED)

    def _relation(self, kind: RelationKind) -> RelationToggle:
        async def _load() -> bool:
            if self._identity is None:
                return False
            return await relation_exists(self._documents, kind, self._identity.uid, self.video.id)

        async def _write(active: bool) -> bool:
            if self._identity is None:
                raise AuthError("Sign in to like or save videos.", code="auth/no-current-user")
            return await set_relation_state(self._documents, kind, self._identity.uid, self.video, active=active)

        return RelationToggle(load=_load, write=_write, name=f"{kind.value}:{self.video.id}")

    # lifecycle -----------------------------------------------------------

    def bind_player(self, player: CardPlayer) -> None:
        self._player = player

    async def mount(self) -> None:
        self.mounted = True
        if self._identity is None:
            return
        await asyncio.gather(self.like.load(), self.saved.load())

    def unmount(self) -> None:
        self.mounted = False
        self.deactivate()

    # playback ------------------------------------------------------------

    @property
    def muted(self) -> bool:
        return self._preferences.muted or self.force_muted

    async def activate(self) -> PlaybackState:
        """Start from position zero with the preferred mute setting."""

        self.active = True
        self._player.seek(0)
        muted = self._preferences.muted
        try:
            await self._player.play(muted=muted)
        except PlaybackRejected:
            if muted:
                logger.info("Muted playback rejected for %s", self.video.id)
                self.playback = PlaybackState.PAUSED
                return self.playback
            try:
                await self._player.play(muted=True)
            except PlaybackRejected:
                logger.info("Playback rejected for %s even when muted", self.video.id)
                self.playback = PlaybackState.PAUSED
                return self.playback
            self.force_muted = True
            self._player.set_muted(True)

        if not self.active:
            # Deactivated while play() was pending.
            self._player.pause()
            self._player.seek(0)
            self.playback = PlaybackState.PAUSED
            return self.playback

        self.playback = PlaybackState.PLAYING
        return self.playback

    def deactivate(self) -> None:
        was_started = self.playback is not PlaybackState.IDLE
        self.active = False
        self._player.pause()
        self._player.seek(0)
        if was_started:
            self.playback = PlaybackState.PAUSED

    async def tap(self) -> PlaybackState:
        """Direct interaction: clears a forced mute and toggles play/pause."""

        self.force_muted = False
        self._player.set_muted(self._preferences.muted)
        if self.playback is PlaybackState.PLAYING:
            self._player.pause()
            self.playback = PlaybackState.PAUSED
            return self.playback
        try:
            await self._player.play(muted=self._preferences.muted)
        except PlaybackRejected:
            logger.info("Playback rejected after tap on %s", self.video.id)
            return self.playback
        self.playback = PlaybackState.PLAYING
        return self.playback

    def toggle_mute(self) -> bool:
        muted = not self.muted
        self._preferences.muted = muted
        self.force_muted = False
        self._player.set_muted(muted)
        return muted

    async def handle_ended(self) -> None:
        self.playback = PlaybackState.PAUSED
        if self._on_ended is None:
            return
        result = self._on_ended()
        if inspect.isawaitable(result):
            await result

    # relations -----------------------------------------------------------

    async def toggle_like(self) -> bool:
        if self._identity is None:
            return self.like.value
        return await self.like.toggle()

    async def toggle_save(self) -> bool:
        if self._identity is None:
            return self.saved.value
        return await self.saved.toggle()

    # admin ---------------------------------------------------------------

    @property
    def can_delete(self) -> bool:
        return self._admin_policy.is_admin(self._identity)

    async def delete(self) -> DeletionResult:
        """Remove the feed document, then make a best-effort pass at the object."""

        self._admin_policy.require(self._identity)

        try:
            await self._documents.delete_document(f"{self._collection}/{self.video.id}")
        except RemoteStoreError as exc:
            logger.warning("Deleting video %s failed: %s", self.video.id, exc.describe())
            return DeletionResult(False, False, f"Delete failed: {exc.message}")

        object_deleted = await self._delete_object()
        return DeletionResult(True, object_deleted, "Video deleted.")

    async def _delete_object(self) -> bool:
        url = self.video.url
        try:
            await self._objects.delete(self._objects.ref_from_url(url))
            return True
        except RemoteStoreError as exc:
            logger.debug("Direct object delete failed for %s: %s", self.video.id, exc.describe())

        path = storage_path_from_url(url)
        if path is None:
            logger.warning("Video %s deleted; storage object left behind (unparsable URL)", self.video.id)
            return False
        try:
            await self._objects.delete(path)
        except RemoteStoreError as exc:
            logger.warning("Video %s deleted; storage object %s left behind: %s", self.video.id, path, exc.describe())
            return False
        return True


__all__ = [
    "CardPlayer",
    "DeletionResult",
    "PlaybackRejected",
    "PlaybackState",
    "RelationToggle",
    "ToggleState",
    "VideoCard",
]
