"""Random background source selection with poster fallback."""
from __future__ import annotations

import random

import pytest

from motivate.services.background_video import (
    BackgroundConfigurationError,
    BackgroundMode,
    BackgroundVideoSelector,
    discover_background_sources,
)
from motivate.services.video_card import PlaybackRejected


class FakeBackgroundPlayer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.playing = False

    async def play(self) -> None:
        if self.error is not None:
            raise self.error
        self.playing = True

    def pause(self) -> None:
        self.playing = False


def test_requires_poster() -> None:
    with pytest.raises(BackgroundConfigurationError):
        BackgroundVideoSelector(["/bg/a.mp4"], poster="  ")


def test_selection_is_stable_for_a_mount() -> None:
    selector = BackgroundVideoSelector(
        ["/bg/a.mp4", "/bg/b.mp4", "/bg/c.mp4"], poster="/bg/fallback.jpg", rng=random.Random(7)
    )
    assert selector.mount() is BackgroundMode.VIDEO
    chosen = selector.display
    assert chosen in {"/bg/a.mp4", "/bg/b.mp4", "/bg/c.mp4"}
    assert selector.display == chosen

    selector.unmount()
    assert selector.display is None


def test_empty_pool_and_reduced_motion_show_poster() -> None:
    assert BackgroundVideoSelector([], poster="/p.jpg").mount() is BackgroundMode.POSTER
    reduced = BackgroundVideoSelector(["/bg/a.mp4"], poster="/p.jpg", reduced_motion=True)
    reduced.mount()
    assert reduced.display == "/p.jpg"


def test_error_falls_back_to_poster_until_remount() -> None:
    selector = BackgroundVideoSelector(["/bg/a.mp4"], poster="/p.jpg")
    selector.mount()
    selector.on_error()
    assert selector.mode is BackgroundMode.POSTER
    assert selector.display == "/p.jpg"

    selector.mount()
    assert selector.display == "/bg/a.mp4"


@pytest.mark.asyncio
async def test_visibility_pauses_and_resumes() -> None:
    player = FakeBackgroundPlayer()
    selector = BackgroundVideoSelector(["/bg/a.mp4"], poster="/p.jpg")
    selector.mount(player)

    await selector.on_visibility_change(hidden=False)
    assert player.playing
    await selector.on_visibility_change(hidden=True)
    assert not player.playing


@pytest.mark.asyncio
async def test_rejected_resume_is_ignored() -> None:
    selector = BackgroundVideoSelector(["/bg/a.mp4"], poster="/p.jpg")
    selector.mount(FakeBackgroundPlayer(PlaybackRejected("autoplay blocked")))
    await selector.on_visibility_change(hidden=False)
    assert selector.mode is BackgroundMode.VIDEO


@pytest.mark.asyncio
async def test_unexpected_resume_errors_propagate() -> None:
    selector = BackgroundVideoSelector(["/bg/a.mp4"], poster="/p.jpg")
    selector.mount(FakeBackgroundPlayer(OSError("decoder crashed")))
    with pytest.raises(OSError):
        await selector.on_visibility_change(hidden=False)


def test_discover_filters_by_extension(tmp_path) -> None:
    for name in ("b.MP4", "a.webm", "c.mov", "poster.jpg", "notes.txt"):
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "nested.mp4").mkdir()

    assert discover_background_sources(tmp_path) == ["/bg/a.webm", "/bg/b.MP4", "/bg/c.mov"]
    assert discover_background_sources(tmp_path / "missing") == []
