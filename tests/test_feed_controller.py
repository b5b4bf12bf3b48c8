"""Live feed ordering, single active card and auto-advance."""
from __future__ import annotations

import asyncio

import pytest

from motivate.clients.remote_store import SERVER_TIMESTAMP
from motivate.services.feed_controller import FeedController
from motivate.services.video_card import PlaybackState


async def _drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


async def _add(remote, title: str) -> str:
    return await remote.documents.add_document(
        "videos", {"url": f"https://cdn/{title}.mp4", "title": title, "hashtags": [], "createdAt": SERVER_TIMESTAMP}
    )


@pytest.mark.asyncio
async def test_snapshots_replace_the_list_newest_first(remote, preferences) -> None:
    controller = FeedController(remote.documents, preferences)
    seen: list[list[str]] = []
    controller.on_change(lambda videos: seen.append([video.title for video in videos]))
    controller.start()
    await _drain()
    assert controller.loaded
    assert controller.videos == []

    await _add(remote, "first")
    await _add(remote, "second")
    await _drain()

    assert [video.title for video in controller.videos] == ["second", "first"]
    assert seen[-1] == ["second", "first"]
    controller.close()


@pytest.mark.asyncio
async def test_close_unsubscribes(remote, preferences) -> None:
    controller = FeedController(remote.documents, preferences)
    controller.start()
    assert remote.documents.subscription_count == 1
    controller.close()
    assert remote.documents.subscription_count == 0
    assert not controller.subscribed

    await _add(remote, "late")
    await _drain()
    assert controller.videos == []


@pytest.mark.asyncio
async def test_threshold_gates_activation(remote, preferences) -> None:
    controller = FeedController(remote.documents, preferences, threshold=0.6)
    for title in ("a", "b", "c"):
        await _add(remote, title)
    controller.start()
    await _drain()

    assert await controller.report_intersection(1, 0.59) is None
    assert await controller.report_intersection(1, 0.6) == 1
    assert await controller.report_intersection(7, 1.0) == 1
    controller.close()


@pytest.mark.asyncio
async def test_only_one_card_plays(remote, preferences, make_player) -> None:
    controller = FeedController(remote.documents, preferences)
    for title in ("a", "b"):
        await _add(remote, title)
    controller.start()
    await _drain()

    players = [make_player(), make_player()]
    cards = [
        controller.create_card(video, objects=remote.objects, player=player)
        for video, player in zip(controller.videos, players)
    ]

    await controller.report_intersection(0, 0.9)
    assert cards[0].playback is PlaybackState.PLAYING

    await controller.report_intersection(1, 0.7)
    assert controller.active_index == 1
    assert cards[0].playback is PlaybackState.PAUSED
    assert players[0].position == 0
    assert cards[1].playback is PlaybackState.PLAYING
    controller.close()


@pytest.mark.asyncio
async def test_latest_crossing_wins_when_reports_race(remote, preferences, make_player) -> None:
    controller = FeedController(remote.documents, preferences)
    for title in ("a", "b"):
        await _add(remote, title)
    controller.start()
    await _drain()

    slow = make_player()
    slow.gate = asyncio.Event()
    cards = [
        controller.create_card(controller.videos[0], objects=remote.objects, player=slow),
        controller.create_card(controller.videos[1], objects=remote.objects, player=make_player()),
    ]

    first = asyncio.create_task(controller.report_intersection(0, 0.8))
    await asyncio.sleep(0)
    await controller.report_intersection(1, 0.8)
    slow.gate.set()
    await first

    assert controller.active_index == 1
    assert cards[0].playback is PlaybackState.PAUSED
    assert cards[1].playback is PlaybackState.PLAYING
    controller.close()


@pytest.mark.asyncio
async def test_auto_advance_scrolls_to_next_and_stops_at_end(remote, preferences, make_player) -> None:
    scrolled: list[int] = []
    controller = FeedController(remote.documents, preferences, scroll_to=scrolled.append)
    for title in ("a", "b"):
        await _add(remote, title)
    controller.start()
    await _drain()

    cards = [controller.create_card(video, objects=remote.objects, player=make_player()) for video in controller.videos]
    await controller.report_intersection(0, 1.0)

    await cards[0].handle_ended()
    assert scrolled == [1]

    await controller.report_intersection(1, 1.0)
    await cards[1].handle_ended()
    assert scrolled == [1]
    controller.close()


@pytest.mark.asyncio
async def test_auto_advance_preference_is_persisted(remote, preferences) -> None:
    scrolled: list[int] = []
    controller = FeedController(remote.documents, preferences, scroll_to=scrolled.append)
    assert controller.auto_advance is True

    controller.set_auto_advance(False)
    assert preferences.auto_advance is False

    for title in ("a", "b"):
        await _add(remote, title)
    controller.start()
    await _drain()
    await controller.report_intersection(0, 1.0)
    assert await controller.handle_playback_ended() is None
    assert scrolled == []
    controller.close()


@pytest.mark.asyncio
async def test_shrinking_snapshot_clamps_active_index(remote, preferences, make_player) -> None:
    controller = FeedController(remote.documents, preferences)
    ids = [await _add(remote, title) for title in ("a", "b", "c")]
    controller.start()
    await _drain()
    cards = {
        video.title: controller.create_card(video, objects=remote.objects, player=make_player())
        for video in controller.videos
    }
    await controller.report_intersection(2, 1.0)

    # Index 2 is the oldest entry ("a").
    await remote.documents.delete_document(f"videos/{ids[0]}")
    await _drain()
    assert controller.active_index == 1
    assert controller.active_video.title == "b"
    assert cards["a"].playback is PlaybackState.PAUSED
    assert cards["b"].playback is PlaybackState.PLAYING
    assert cards["c"].playback is PlaybackState.IDLE

    for doc_id in ids[1:]:
        await remote.documents.delete_document(f"videos/{doc_id}")
    await _drain()
    assert controller.active_index is None
    assert controller.active_video is None
    controller.close()


def test_threshold_must_be_positive(remote, preferences) -> None:
    with pytest.raises(ValueError):
        FeedController(remote.documents, preferences, threshold=0)


@pytest.mark.asyncio
async def test_late_bound_player_and_detach(remote, preferences, make_player) -> None:
    controller = FeedController(remote.documents, preferences)
    await _add(remote, "a")
    controller.start()
    await _drain()

    card = controller.create_card(controller.videos[0], objects=remote.objects)
    player = make_player()
    card.bind_player(player)
    await controller.report_intersection(0, 1.0)
    assert player.playing

    controller.detach_card(card.video.id)
    assert not card.mounted
    assert controller.card_at(0) is None
    controller.close()


@pytest.mark.asyncio
async def test_newer_video_above_the_playing_card_does_not_steal_playback(remote, preferences, make_player) -> None:
    controller = FeedController(remote.documents, preferences)
    await _add(remote, "a")
    controller.start()
    await _drain()
    first = controller.create_card(controller.videos[0], objects=remote.objects, player=make_player())
    await controller.report_intersection(0, 1.0)

    await _add(remote, "c")
    await _drain()
    assert [video.title for video in controller.videos] == ["c", "a"]
    assert controller.active_index == 1
    assert controller.active_video.title == "a"
    assert first.playback is PlaybackState.PLAYING

    newest = controller.create_card(controller.videos[0], objects=remote.objects, player=make_player())
    await controller.report_intersection(0, 1.0)
    assert newest.playback is PlaybackState.PLAYING
    assert first.playback is PlaybackState.PAUSED
    assert not first.active
    controller.close()


@pytest.mark.asyncio
async def test_only_the_active_card_advances_the_feed(remote, preferences, make_player) -> None:
    scrolled: list[int] = []
    controller = FeedController(remote.documents, preferences, scroll_to=scrolled.append)
    for title in ("a", "b", "c"):
        await _add(remote, title)
    controller.start()
    await _drain()
    cards = [controller.create_card(video, objects=remote.objects, player=make_player()) for video in controller.videos]

    await controller.report_intersection(1, 1.0)
    await cards[0].handle_ended()
    assert scrolled == []

    await cards[1].handle_ended()
    assert scrolled == [2]
    controller.close()
