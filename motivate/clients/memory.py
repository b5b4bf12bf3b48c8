"""In-process remote store used for local runs and tests.

Mirrors the behaviour the feed controller relies on from the hosted
platform: callbacks arrive on the next event-loop turn, server timestamps are
strictly increasing, and objects get tokenised download URLs.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Callable
from urllib.parse import quote, unquote, urlparse

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import Settings, get_settings
from .remote_store import (
    SERVER_TIMESTAMP,
    AuthError,
    AuthStateListener,
    DocumentSnapshot,
    DocumentStoreError,
    Identity,
    InvalidObjectReference,
    ObjectStoreError,
    ProgressCallback,
    RemoteStore,
    RemoteStoreError,
    SnapshotListener,
    Unsubscribe,
)


_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
DEFAULT_CHUNK_SIZE = 256 * 1024
DOWNLOAD_HOST = "storage.motivate.local"


def _deliver(callback: Callable[..., None], *args: Any) -> None:
    """Invoke ``callback`` on the next loop turn, or right away outside a loop."""

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback(*args)
        return
    loop.call_soon(callback, *args)


class _FailureInjector:
    """Queue of one-shot errors keyed by operation name and optional path."""

    def __init__(self) -> None:
        self._pending: list[tuple[str, str | None, RemoteStoreError]] = []

    def add(self, operation: str, error: RemoteStoreError, *, path: str | None = None, times: int = 1) -> None:
        for _ in range(times):
            self._pending.append((operation, path, error))

    def check(self, operation: str, path: str | None = None) -> None:
        for index, (op, target, error) in enumerate(self._pending):
            if op == operation and (target is None or target == path):
                del self._pending[index]
                raise error


@dataclass
class _Account:
    uid: str
    email: str
    password_hash: str


class InMemoryAuthClient:
    """Email/password auth with signed ID tokens."""

    def __init__(self, *, token_secret: str, token_ttl: timedelta = timedelta(hours=1)) -> None:
        self._accounts: dict[str, _Account] = {}
        self._current: Identity | None = None
        self._listeners: list[AuthStateListener] = []
        self._secret = token_secret
        self._ttl = token_ttl
        self.password_resets: list[str] = []
        self.failures = _FailureInjector()

    @property
    def current_identity(self) -> Identity | None:
        return self._current

    def _issue(self, account: _Account) -> Identity:
        now = datetime.now(timezone.utc)
        payload = {"sub": account.uid, "email": account.email, "iat": now, "exp": now + self._ttl}
        token = jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)
        return Identity(uid=account.uid, email=account.email, id_token=token)

    def _set_current(self, identity: Identity | None) -> None:
        self._current = identity
        for listener in list(self._listeners):
            _deliver(listener, identity)

    async def sign_in(self, email: str, password: str) -> Identity:
        await asyncio.sleep(0)
        normalized = (email or "").strip().lower()
        self.failures.check("sign_in", normalized)
        account = self._accounts.get(normalized)
        if account is None:
            raise AuthError("There is no user record corresponding to this email.", code="auth/user-not-found")
        if not _pwd_context.verify(password or "", account.password_hash):
            raise AuthError("The password is invalid.", code="auth/wrong-password")
        identity = self._issue(account)
        self._set_current(identity)
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        await asyncio.sleep(0)
        normalized = (email or "").strip().lower()
        self.failures.check("sign_up", normalized)
        if "@" not in normalized:
            raise AuthError("The email address is badly formatted.", code="auth/invalid-email")
        if normalized in self._accounts:
            raise AuthError("The email address is already in use.", code="auth/email-already-in-use")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError("Password should be at least 6 characters.", code="auth/weak-password")
        account = _Account(uid=uuid.uuid4().hex, email=normalized, password_hash=_pwd_context.hash(password))
        self._accounts[normalized] = account
        identity = self._issue(account)
        self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        await asyncio.sleep(0)
        self.failures.check("sign_out")
        self._set_current(None)

    async def send_password_reset(self, email: str) -> None:
        await asyncio.sleep(0)
        normalized = (email or "").strip().lower()
        self.failures.check("send_password_reset", normalized)
        if normalized not in self._accounts:
            raise AuthError("There is no user record corresponding to this email.", code="auth/user-not-found")
        self.password_resets.append(normalized)

    async def verify_token(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[TOKEN_ALGORITHM])
        except JWTError as exc:
            raise AuthError("Invalid ID token", code="auth/invalid-id-token") from exc
        uid = payload.get("sub")
        if not uid:
            raise AuthError("Invalid ID token payload", code="auth/invalid-id-token")
        return Identity(uid=str(uid), email=payload.get("email"), id_token=token)

    def on_auth_state_changed(self, listener: AuthStateListener) -> Unsubscribe:
        self._listeners.append(listener)
        _deliver(listener, self._current)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


@dataclass
class _Subscription:
    collection: str
    listener: SnapshotListener
    order_by: str | None
    descending: bool
    active: bool = True


class InMemoryDocumentStore:
    """Hierarchical ``collection/doc/collection/doc`` store with live listeners."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._subscriptions: list[_Subscription] = []
        self._last_timestamp = datetime.fromtimestamp(0, tz=timezone.utc)
        self.failures = _FailureInjector()

    @staticmethod
    def _split(path: str) -> list[str]:
        segments = [segment for segment in (path or "").strip("/").split("/") if segment]
        if not segments:
            raise DocumentStoreError("Empty path", code="invalid-argument")
        return segments

    def _document_path(self, path: str) -> str:
        segments = self._split(path)
        if len(segments) % 2:
            raise DocumentStoreError(f"{path!r} is not a document path", code="invalid-argument")
        return "/".join(segments)

    def _collection_path(self, path: str) -> str:
        segments = self._split(path)
        if not len(segments) % 2:
            raise DocumentStoreError(f"{path!r} is not a collection path", code="invalid-argument")
        return "/".join(segments)

    def _server_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for key, value in data.items():
            resolved[key] = self._server_timestamp() if value is SERVER_TIMESTAMP else value
        return resolved

    def _query(self, collection: str, order_by: str | None, descending: bool) -> list[DocumentSnapshot]:
        prefix = collection + "/"
        snapshots = [
            DocumentSnapshot(id=path[len(prefix):], path=path, data=dict(data))
            for path, data in self._documents.items()
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]
        if order_by is not None:
            snapshots = [snap for snap in snapshots if (snap.data or {}).get(order_by) is not None]
            snapshots.sort(key=lambda snap: (snap.data or {})[order_by], reverse=descending)
        return snapshots

    def _notify(self, collection: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.active and subscription.collection == collection:
                self._emit(subscription)

    def _emit(self, subscription: _Subscription) -> None:
        snapshot = self._query(subscription.collection, subscription.order_by, subscription.descending)

        def _fire() -> None:
            if subscription.active:
                subscription.listener(snapshot)

        _deliver(_fire)

    async def list_documents(
        self, collection: str, *, order_by: str | None = None, descending: bool = False
    ) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        normalized = self._collection_path(collection)
        self.failures.check("list_documents", normalized)
        return self._query(normalized, order_by, descending)

    def subscribe(
        self,
        collection: str,
        listener: SnapshotListener,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Unsubscribe:
        subscription = _Subscription(self._collection_path(collection), listener, order_by, descending)
        self._subscriptions.append(subscription)
        self._emit(subscription)

        def _unsubscribe() -> None:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return _unsubscribe

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def get_document(self, path: str) -> DocumentSnapshot:
        await asyncio.sleep(0)
        normalized = self._document_path(path)
        self.failures.check("get_document", normalized)
        data = self._documents.get(normalized)
        return DocumentSnapshot(
            id=normalized.rsplit("/", 1)[-1],
            path=normalized,
            data=dict(data) if data is not None else None,
        )

    async def set_document(self, path: str, data: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        normalized = self._document_path(path)
        self.failures.check("set_document", normalized)
        self._documents[normalized] = self._resolve(data)
        self._notify(normalized.rsplit("/", 1)[0])

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        normalized = self._collection_path(collection)
        self.failures.check("add_document", normalized)
        doc_id = uuid.uuid4().hex[:20]
        self._documents[f"{normalized}/{doc_id}"] = self._resolve(data)
        self._notify(normalized)
        return doc_id

    async def delete_document(self, path: str) -> None:
        await asyncio.sleep(0)
        normalized = self._document_path(path)
        self.failures.check("delete_document", normalized)
        self._documents.pop(normalized, None)
        self._notify(normalized.rsplit("/", 1)[0])


@dataclass
class _StoredObject:
    data: bytes
    content_type: str
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


class InMemoryObjectStore:
    """Bucket of blobs addressed by path, with Firebase-style download URLs."""

    def __init__(self, *, bucket: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.bucket = bucket
        self.chunk_size = max(1, chunk_size)
        self._objects: dict[str, _StoredObject] = {}
        self.failures = _FailureInjector()

    def __contains__(self, path: object) -> bool:
        return path in self._objects

    def content_type_of(self, path: str) -> str | None:
        stored = self._objects.get(path)
        return stored.content_type if stored else None

    async def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        total = len(payload)
        transferred = 0
        while True:
            await asyncio.sleep(0)
            self.failures.check("upload", path)
            transferred = min(total, transferred + self.chunk_size)
            if on_progress is not None:
                on_progress(transferred, total)
            if transferred >= total:
                break
        self._objects[path] = _StoredObject(bytes(payload), content_type)

    def _require(self, path: str) -> _StoredObject:
        stored = self._objects.get(path)
        if stored is None:
            raise ObjectStoreError(f"No object exists at {path}", code="storage/object-not-found")
        return stored

    async def update_content_type(self, path: str, content_type: str) -> None:
        await asyncio.sleep(0)
        self.failures.check("update_content_type", path)
        self._require(path).content_type = content_type

    async def download_url(self, path: str) -> str:
        await asyncio.sleep(0)
        self.failures.check("download_url", path)
        stored = self._require(path)
        return f"https://{DOWNLOAD_HOST}/v0/b/{self.bucket}/o/{quote(path, safe='')}?alt=media&token={stored.token}"

    async def delete(self, path: str) -> None:
        await asyncio.sleep(0)
        self.failures.check("delete", path)
        self._require(path)
        del self._objects[path]

    def ref_from_url(self, url: str) -> str:
        parsed = urlparse(url or "")
        if parsed.scheme == "gs" and parsed.netloc == self.bucket and parsed.path.strip("/"):
            return parsed.path.lstrip("/")
        prefix = f"/v0/b/{self.bucket}/o/"
        if parsed.scheme == "https" and parsed.netloc == DOWNLOAD_HOST and parsed.path.startswith(prefix):
            path = unquote(parsed.path[len(prefix):])
            if path:
                return path
        raise InvalidObjectReference()


def create_memory_store(settings: Settings | None = None) -> RemoteStore:
    """Build a fresh in-memory backend from settings."""

    resolved = settings or get_settings()
    return RemoteStore(
        auth=InMemoryAuthClient(token_secret=resolved.memory_token_secret),
        documents=InMemoryDocumentStore(),
        objects=InMemoryObjectStore(bucket=resolved.memory_bucket, chunk_size=resolved.upload_chunk_size),
    )


__all__ = [
    "InMemoryAuthClient",
    "InMemoryDocumentStore",
    "InMemoryObjectStore",
    "create_memory_store",
]
