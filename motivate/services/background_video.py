"""Random looping background video with a static poster fallback."""
from __future__ import annotations

import logging
import random
from enum import Enum
from pathlib import Path
from typing import Protocol, Sequence

from .video_card import PlaybackRejected

logger = logging.getLogger(__name__)

BACKGROUND_EXTENSIONS = (".mp4", ".webm", ".mov")


class BackgroundConfigurationError(ValueError):
    """Raised when the selector is built without a poster to fall back on."""


class BackgroundPlayer(Protocol):
    async def play(self) -> None: ...

    def pause(self) -> None: ...


class BackgroundMode(str, Enum):
    UNMOUNTED = "unmounted"
    VIDEO = "video"
    POSTER = "poster"


def discover_background_sources(directory: Path | str, *, url_prefix: str = "/bg") -> list[str]:
    """List video files in ``directory`` as URL paths under ``url_prefix``."""

    root = Path(directory)
    try:
        names = sorted(entry.name for entry in root.iterdir() if entry.is_file())
    except OSError:
        return []
    prefix = url_prefix.rstrip("/")
    return [f"{prefix}/{name}" for name in names if name.lower().endswith(BACKGROUND_EXTENSIONS)]


class BackgroundVideoSelector:
    """Chooses one source per mount and never reselects until remounted."""

    def __init__(
        self,
        sources: Sequence[str] | None = None,
        *,
        poster: str | None,
        reduced_motion: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        if not poster or not poster.strip():
            raise BackgroundConfigurationError("A poster image is required as the background fallback")
        self.poster = poster
        self._pool = [source for source in (sources or ()) if source]
        self._reduced_motion = reduced_motion
        self._rng = rng or random.Random()
        self._player: BackgroundPlayer | None = None
        self.source: str | None = None
        self.mode = BackgroundMode.UNMOUNTED

    def mount(self, player: BackgroundPlayer | None = None) -> BackgroundMode:
        self._player = player
        if not self._pool or self._reduced_motion:
            self.source = None
            self.mode = BackgroundMode.POSTER
        else:
            self.source = self._rng.choice(self._pool)
            self.mode = BackgroundMode.VIDEO
        return self.mode

    def unmount(self) -> None:
        self._player = None
        self.source = None
        self.mode = BackgroundMode.UNMOUNTED

    @property
    def display(self) -> str | None:
        """URL currently shown: the chosen video, or the poster."""

        if self.mode is BackgroundMode.VIDEO:
            return self.source
        if self.mode is BackgroundMode.POSTER:
            return self.poster
        return None

    def on_error(self) -> None:
        """Decoding or playback failed; show the poster for the rest of this mount."""

        if self.mode is BackgroundMode.VIDEO:
            logger.info("Background source %s failed; falling back to poster", self.source)
        self.source = None
        self.mode = BackgroundMode.POSTER

    async def on_visibility_change(self, hidden: bool) -> None:
        player = self._player
        if player is None or self.mode is not BackgroundMode.VIDEO:
            return
        if hidden:
            player.pause()
            return
        try:
            await player.play()
        except PlaybackRejected:
            # Resume is best effort; autoplay policies may still block it.
            logger.debug("Background resume rejected", exc_info=True)


__all__ = [
    "BACKGROUND_EXTENSIONS",
    "BackgroundConfigurationError",
    "BackgroundMode",
    "BackgroundPlayer",
    "BackgroundVideoSelector",
    "discover_background_sources",
]
