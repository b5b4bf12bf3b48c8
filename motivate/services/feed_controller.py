"""Live feed list, single active card and auto-advance."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Callable, Sequence

from ..clients.remote_store import DocumentSnapshot, DocumentStore, Identity, ObjectStore, Unsubscribe
from ..schemas.videos import VideoEntry
from .preferences import PreferenceStore
from .session_guard import AdminPolicy
from .video_card import CardPlayer, VideoCard

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_THRESHOLD = 0.6


class FeedController:
    """Owns the ordered feed and decides which card is active.

    Snapshots from the live subscription replace the whole list. Visibility
    reports whose ratio reaches ``threshold`` make that card active; when two
    cards cross in quick succession the later report wins. The active card is
    tracked by video id so it survives reordering snapshots.
    """

    def __init__(
        self,
        documents: DocumentStore,
        preferences: PreferenceStore,
        *,
        collection: str = "videos",
        threshold: float = DEFAULT_ACTIVE_THRESHOLD,
        scroll_to: Callable[[int], object] | None = None,
    ) -> None:
        if not 0 < threshold <= 1:
            raise ValueError("threshold must be in (0, 1]")
        self._documents = documents
        self._preferences = preferences
        self._collection = collection
        self.threshold = threshold
        self._scroll_to = scroll_to
        self._unsubscribe: Unsubscribe | None = None
        self._cards: dict[str, VideoCard] = {}
        self._listeners: list[Callable[[list[VideoEntry]], None]] = []
        self._active_id: str | None = None
        self._tasks: set[asyncio.Task[None]] = set()

        self.videos: list[VideoEntry] = []
        self.active_index: int | None = None
        self.loaded = False

    # subscription --------------------------------------------------------

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._documents.subscribe(
            self._collection,
            self._on_snapshot,
            order_by="createdAt",
            descending=True,
        )

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for card in self._cards.values():
            card.unmount()
        self._cards.clear()

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def on_change(self, listener: Callable[[list[VideoEntry]], None]) -> None:
        self._listeners.append(listener)

    def _on_snapshot(self, snapshots: Sequence[DocumentSnapshot]) -> None:
        if self._unsubscribe is None:
            return
        self.replace(VideoEntry.from_document(snapshot) for snapshot in snapshots)

    def replace(self, videos) -> None:
        self.videos = list(videos)
        self.loaded = True

        ids = {video.id for video in self.videos}
        for video_id in [key for key in self._cards if key not in ids]:
            self._cards.pop(video_id).unmount()
        self._follow_active()

        logger.debug("Feed snapshot: %d videos", len(self.videos))
        for listener in list(self._listeners):
            listener(self.videos)

    def _index_of(self, video_id: str) -> int | None:
        return next((i for i, entry in enumerate(self.videos) if entry.id == video_id), None)

    def _follow_active(self) -> None:
        if self._active_id is None:
            return
        index = self._index_of(self._active_id)
        if index is not None:
            self.active_index = index
            return

        # The active video is gone: clamp to the same slot and play what now sits there.
        if not self.videos:
            self.active_index = self._active_id = None
            return
        self.active_index = min(self.active_index or 0, len(self.videos) - 1)
        self._active_id = self.videos[self.active_index].id
        self._schedule_activation(self._active_id)

    def _schedule_activation(self, video_id: str) -> None:
        if video_id not in self._cards:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._activate_if_current(video_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _activate_if_current(self, video_id: str) -> None:
        card = self._cards.get(video_id)
        if card is not None and self._active_id == video_id and not card.active:
            await card.activate()

    # cards ---------------------------------------------------------------

    def attach_card(self, card: VideoCard) -> None:
        self._cards[card.video.id] = card

    def create_card(
        self,
        video: VideoEntry,
        *,
        objects: ObjectStore,
        identity: Identity | None = None,
        admin_policy: AdminPolicy | None = None,
        player: CardPlayer | None = None,
    ) -> VideoCard:
        """Build a card whose playback-ended signal feeds auto-advance, and attach it."""

        async def _ended() -> None:
            # Only the active card drives auto-advance.
            if video.id in self._cards and video.id == self._active_id:
                await self.handle_playback_ended(self.active_index)

        card = VideoCard(
            video,
            documents=self._documents,
            objects=objects,
            preferences=self._preferences,
            identity=identity,
            admin_policy=admin_policy,
            player=player,
            on_ended=_ended,
            collection=self._collection,
        )
        self.attach_card(card)
        return card

    def detach_card(self, video_id: str) -> None:
        card = self._cards.pop(video_id, None)
        if card is not None:
            card.unmount()

    def card_at(self, index: int | None) -> VideoCard | None:
        if index is None or not 0 <= index < len(self.videos):
            return None
        return self._cards.get(self.videos[index].id)

    @property
    def active_video(self) -> VideoEntry | None:
        if self.active_index is None or self.active_index >= len(self.videos):
            return None
        return self.videos[self.active_index]

    # visibility ----------------------------------------------------------

    async def report_intersection(self, index: int, ratio: float) -> int | None:
        if not 0 <= index < len(self.videos) or ratio < self.threshold:
            return self.active_index
        await self.set_active(index)
        return self.active_index

    async def set_active(self, index: int) -> None:
        previous = self._cards.get(self._active_id) if self._active_id is not None else None
        self.active_index = index
        self._active_id = self.videos[index].id
        current = self.card_at(index)
        if previous is not None and previous is not current:
            previous.deactivate()
        if current is not None and not current.active:
            await current.activate()

    # auto-advance --------------------------------------------------------

    @property
    def auto_advance(self) -> bool:
        return self._preferences.auto_advance

    def set_auto_advance(self, enabled: bool) -> bool:
        self._preferences.auto_advance = enabled
        return enabled

    async def handle_playback_ended(self, index: int | None = None) -> int | None:
        """Scroll to the next card when auto-advance is on. No wraparound."""

        if index is None:
            index = self.active_index
        if index is None or not self.auto_advance:
            return None
        target = index + 1
        if target >= len(self.videos):
            return None
        if self._scroll_to is not None:
            result = self._scroll_to(target)
            if inspect.isawaitable(result):
                await result
        return target


__all__ = ["DEFAULT_ACTIVE_THRESHOLD", "FeedController"]
