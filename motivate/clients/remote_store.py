"""Interfaces for the backend-as-a-service the feed controller runs against.

Authentication, documents and binary objects all live on the remote
platform. The rest of the package only talks to these protocols so the
in-memory, Firebase and Spaces adapters stay interchangeable.
"""
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Protocol, Union, runtime_checkable


class _ServerTimestamp:
    """Sentinel asking the document store to fill in its own write time."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class RemoteStoreError(RuntimeError):
    """Base class for rejections coming back from the remote platform."""

    def __init__(self, message: str, *, code: str = "unknown") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def describe(self) -> str:
        """Return the ``[code] message`` form used in status lines."""

        return f"[{self.code}] {self.message}"


class AuthError(RemoteStoreError):
    """Raised when a sign-in, sign-up or token check is rejected."""


class DocumentStoreError(RemoteStoreError):
    """Raised when a document read or write is rejected."""


class ObjectStoreError(RemoteStoreError):
    """Raised when an object upload, metadata update or deletion fails."""


class InvalidObjectReference(ObjectStoreError):
    """Raised when a URL cannot be resolved into an object reference."""

    def __init__(self, message: str = "URL does not reference an object in this bucket") -> None:
        super().__init__(message, code="storage/invalid-url")


@dataclass(frozen=True)
class Identity:
    """The signed-in user as reported by the auth client."""

    uid: str
    email: str | None = None
    id_token: str | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of one stored document."""

    id: str
    path: str
    data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self.data is not None


Unsubscribe = Callable[[], None]
AuthStateListener = Callable[[Union[Identity, None]], None]
SnapshotListener = Callable[[list[DocumentSnapshot]], None]
ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class AuthClient(Protocol):
    @property
    def current_identity(self) -> Identity | None: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_up(self, email: str, password: str) -> Identity: ...

    async def sign_out(self) -> None: ...

    async def send_password_reset(self, email: str) -> None: ...

    async def verify_token(self, token: str) -> Identity: ...

    def on_auth_state_changed(self, listener: AuthStateListener) -> Unsubscribe: ...


@runtime_checkable
class DocumentStore(Protocol):
    async def list_documents(
        self, collection: str, *, order_by: str | None = None, descending: bool = False
    ) -> list[DocumentSnapshot]: ...

    def subscribe(
        self,
        collection: str,
        listener: SnapshotListener,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Unsubscribe: ...

    async def get_document(self, path: str) -> DocumentSnapshot: ...

    async def set_document(self, path: str, data: dict[str, Any]) -> None: ...

    async def add_document(self, collection: str, data: dict[str, Any]) -> str: ...

    async def delete_document(self, path: str) -> None: ...


@runtime_checkable
class ObjectStore(Protocol):
    async def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> None: ...

    async def update_content_type(self, path: str, content_type: str) -> None: ...

    async def download_url(self, path: str) -> str: ...

    async def delete(self, path: str) -> None: ...

    def ref_from_url(self, url: str) -> str: ...


@dataclass(frozen=True)
class RemoteStore:
    """Bundle of the three remote surfaces handed to controllers."""

    auth: AuthClient
    documents: DocumentStore
    objects: ObjectStore


_acting_identity: ContextVar[Identity | None] = ContextVar("motivate_acting_identity", default=None)


def act_as(identity: Identity | None) -> None:
    """Attribute remote calls made from the current context to ``identity``."""

    _acting_identity.set(identity)


def acting_identity() -> Identity | None:
    return _acting_identity.get()


__all__ = [
    "SERVER_TIMESTAMP",
    "RemoteStoreError",
    "AuthError",
    "DocumentStoreError",
    "ObjectStoreError",
    "InvalidObjectReference",
    "Identity",
    "DocumentSnapshot",
    "Unsubscribe",
    "AuthStateListener",
    "SnapshotListener",
    "ProgressCallback",
    "AuthClient",
    "DocumentStore",
    "ObjectStore",
    "RemoteStore",
    "act_as",
    "acting_identity",
]
