"""Behaviour of the in-process remote store the controllers are tested against."""
from __future__ import annotations

import asyncio

import pytest

from motivate.clients.memory import InMemoryObjectStore
from motivate.clients.remote_store import (
    SERVER_TIMESTAMP,
    AuthError,
    DocumentStoreError,
    InvalidObjectReference,
    ObjectStoreError,
)


async def _drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_sign_up_then_sign_in_issues_verifiable_tokens(remote) -> None:
    created = await remote.auth.sign_up("Someone@Example.com", "secret1")
    assert created.email == "someone@example.com"

    await remote.auth.sign_out()
    assert remote.auth.current_identity is None

    identity = await remote.auth.sign_in("someone@example.com", "secret1")
    verified = await remote.auth.verify_token(identity.id_token)
    assert verified.uid == created.uid


@pytest.mark.asyncio
async def test_auth_error_codes(remote) -> None:
    with pytest.raises(AuthError) as missing:
        await remote.auth.sign_in("nobody@example.com", "secret1")
    assert missing.value.code == "auth/user-not-found"

    await remote.auth.sign_up("a@example.com", "secret1")
    with pytest.raises(AuthError) as wrong:
        await remote.auth.sign_in("a@example.com", "nope-nope")
    assert wrong.value.code == "auth/wrong-password"

    with pytest.raises(AuthError) as weak:
        await remote.auth.sign_up("b@example.com", "123")
    assert weak.value.code == "auth/weak-password"

    with pytest.raises(AuthError) as token:
        await remote.auth.verify_token("garbage")
    assert token.value.code == "auth/invalid-id-token"


@pytest.mark.asyncio
async def test_auth_state_listener_gets_initial_and_changes(remote) -> None:
    seen = []
    unsubscribe = remote.auth.on_auth_state_changed(seen.append)
    await _drain()
    await remote.auth.sign_up("c@example.com", "secret1")
    await _drain()
    unsubscribe()
    await remote.auth.sign_out()
    await _drain()

    assert seen[0] is None
    assert seen[1].email == "c@example.com"
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_subscription_orders_by_server_timestamp(remote) -> None:
    snapshots = []
    unsubscribe = remote.documents.subscribe("videos", snapshots.append, order_by="createdAt", descending=True)
    first = await remote.documents.add_document("videos", {"url": "u1", "createdAt": SERVER_TIMESTAMP})
    second = await remote.documents.add_document("videos", {"url": "u2", "createdAt": SERVER_TIMESTAMP})
    # Pending server timestamp: excluded from ordered queries until resolved.
    await remote.documents.set_document("videos/no-stamp", {"url": "u3"})
    await _drain()

    latest = snapshots[-1]
    assert [snap.id for snap in latest] == [second, first]
    unsubscribe()
    assert remote.documents.subscription_count == 0


@pytest.mark.asyncio
async def test_document_paths_are_validated(remote) -> None:
    with pytest.raises(DocumentStoreError):
        await remote.documents.get_document("videos")
    with pytest.raises(DocumentStoreError):
        await remote.documents.list_documents("videos/abc")


@pytest.mark.asyncio
async def test_upload_reports_progress_per_chunk() -> None:
    objects = InMemoryObjectStore(bucket="b", chunk_size=4)
    progress = []
    await objects.upload("videos/x.mp4", b"0123456789", content_type="video/quicktime", on_progress=lambda t, n: progress.append((t, n)))

    assert progress == [(4, 10), (8, 10), (10, 10)]
    assert objects.content_type_of("videos/x.mp4") == "video/quicktime"


@pytest.mark.asyncio
async def test_download_url_resolves_back_to_path() -> None:
    objects = InMemoryObjectStore(bucket="b")
    await objects.upload("videos/1-0-a b.mp4", b"data", content_type="video/mp4")
    url = await objects.download_url("videos/1-0-a b.mp4")

    assert "/o/videos%2F1-0-a%20b.mp4?" in url
    assert objects.ref_from_url(url) == "videos/1-0-a b.mp4"
    assert objects.ref_from_url("gs://b/videos/1-0-a b.mp4") == "videos/1-0-a b.mp4"
    with pytest.raises(InvalidObjectReference):
        objects.ref_from_url("https://elsewhere.example/clip.mp4")


@pytest.mark.asyncio
async def test_injected_failures_fire_once() -> None:
    objects = InMemoryObjectStore(bucket="b")
    objects.failures.add("upload", ObjectStoreError("quota", code="storage/quota-exceeded"))

    with pytest.raises(ObjectStoreError):
        await objects.upload("videos/a.mp4", b"a", content_type="video/mp4")
    await objects.upload("videos/a.mp4", b"a", content_type="video/mp4")
    assert "videos/a.mp4" in objects
