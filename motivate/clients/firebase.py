"""Firebase Auth, Firestore and Firebase Storage adapters over their REST APIs.

The hosted SDKs push live snapshots; over REST we poll the ordered query and
only emit when the result actually changed.
"""
from __future__ import annotations

import asyncio
import base64
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable
from urllib.parse import quote, unquote, urlparse

import httpx

from ..config import Settings
from ..security.secrets import missing_settings
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
    SnapshotListener,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
FIRESTORE_URL = "https://firestore.googleapis.com/v1"
STORAGE_URL = "https://firebasestorage.googleapis.com/v0"
STORAGE_HOSTS = ("firebasestorage.googleapis.com", "storage.googleapis.com")

_AUTH_ERROR_CODES: dict[str, str] = {
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "WEAK_PASSWORD": "auth/weak-password",
    "INVALID_EMAIL": "auth/invalid-email",
    "MISSING_PASSWORD": "auth/missing-password",
    "INVALID_ID_TOKEN": "auth/invalid-id-token",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
}

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits


class FirebaseConfigurationError(RuntimeError):
    """Raised when the Firebase project settings are missing or invalid."""


@dataclass(frozen=True)
class FirebaseConfig:
    api_key: str
    project_id: str
    storage_bucket: str
    timeout: float = 30.0
    poll_interval: float = 5.0
    chunk_size: int = 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebaseConfig":
        missing = missing_settings(
            {
                "FIREBASE_API_KEY": settings.firebase_api_key,
                "FIREBASE_PROJECT_ID": settings.firebase_project_id,
                "FIREBASE_STORAGE_BUCKET": settings.firebase_storage_bucket,
            }
        )
        if missing:
            raise FirebaseConfigurationError("Missing required Firebase configuration: " + ", ".join(missing))

        return cls(
            api_key=str(settings.firebase_api_key).strip(),
            project_id=str(settings.firebase_project_id).strip(),
            storage_bucket=str(settings.firebase_storage_bucket).strip(),
            timeout=settings.firebase_timeout,
            poll_interval=settings.feed_poll_interval,
            chunk_size=settings.upload_chunk_size,
        )


class _HttpMixin:
    """Shared request helper; reuses an injected client or opens one per call."""

    _client: httpx.AsyncClient | None
    _timeout: float

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or response.reason_phrase)
    if isinstance(error, str):
        return error
    return response.reason_phrase


class FirebaseAuthClient(_HttpMixin):
    """Email/password authentication against the Identity Toolkit API."""

    def __init__(self, config: FirebaseConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client
        self._timeout = config.timeout
        self._current: Identity | None = None
        self._listeners: list[AuthStateListener] = []

    @property
    def current_identity(self) -> Identity | None:
        return self._current

    async def _call(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"
        try:
            response = await self._send("POST", url, params={"key": self._config.api_key}, json=payload)
        except httpx.HTTPError as exc:
            logger.exception("Identity Toolkit request %s failed", endpoint)
            raise AuthError("Network error while contacting the auth service", code="auth/network-request-failed") from exc

        if response.status_code >= 400:
            raw = _error_message(response)
            reason = raw.split(":", 1)[0].strip()
            code = _AUTH_ERROR_CODES.get(reason, "auth/internal-error")
            raise AuthError(raw, code=code)
        return response.json()

    def _set_current(self, identity: Identity | None) -> None:
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)

    def _identity_from(self, payload: dict[str, Any]) -> Identity:
        return Identity(uid=str(payload["localId"]), email=payload.get("email"), id_token=payload.get("idToken"))

    async def sign_in(self, email: str, password: str) -> Identity:
        payload = await self._call(
            "signInWithPassword", {"email": email, "password": password, "returnSecureToken": True}
        )
        identity = self._identity_from(payload)
        self._set_current(identity)
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        payload = await self._call("signUp", {"email": email, "password": password, "returnSecureToken": True})
        identity = self._identity_from(payload)
        self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        self._set_current(None)

    async def send_password_reset(self, email: str) -> None:
        await self._call("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    async def verify_token(self, token: str) -> Identity:
        payload = await self._call("lookup", {"idToken": token})
        users = payload.get("users") or []
        if not users:
            raise AuthError("Invalid ID token", code="auth/invalid-id-token")
        user = users[0]
        return Identity(uid=str(user["localId"]), email=user.get("email"), id_token=token)

    def on_auth_state_changed(self, listener: AuthStateListener) -> Unsubscribe:
        self._listeners.append(listener)
        try:
            asyncio.get_running_loop().call_soon(listener, self._current)
        except RuntimeError:
            listener(self._current)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value``."""

    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        stamp = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return {"timestampValue": stamp.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (bytes, bytearray)):
        return {"bytesValue": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {str(k): encode_value(v) for k, v in value.items()}}}
    raise DocumentStoreError(f"Unsupported Firestore value: {type(value).__name__}", code="invalid-argument")


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore REST ``Value`` into plain Python."""

    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return datetime.fromisoformat(str(value["timestampValue"]).replace("Z", "+00:00"))
    if "stringValue" in value:
        return value["stringValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "referenceValue" in value:
        return value["referenceValue"]
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return {k: decode_value(v) for k, v in value["mapValue"].get("fields", {}).items()}
    return None


def _auto_id() -> str:
    return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(20))


class FirestoreDocumentStore(_HttpMixin):
    """Firestore REST documents with polled collection subscriptions."""

    def __init__(
        self,
        config: FirebaseConfig,
        *,
        token_provider: Callable[[], str | None] = lambda: None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._timeout = config.timeout
        self._token_provider = token_provider
        self._root = f"projects/{config.project_id}/databases/(default)/documents"

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _url(self, path: str = "") -> str:
        suffix = f"/{path.strip('/')}" if path.strip("/") else ""
        return f"{FIRESTORE_URL}/{self._root}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._send(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Firestore %s %s failed", method, url)
            raise DocumentStoreError("Network error while contacting Firestore", code="unavailable") from exc
        if response.status_code >= 400 and response.status_code != 404:
            code = {401: "unauthenticated", 403: "permission-denied"}.get(response.status_code, "internal")
            raise DocumentStoreError(_error_message(response), code=code)
        return response

    def _snapshot(self, document: dict[str, Any]) -> DocumentSnapshot:
        name = str(document.get("name", ""))
        path = name.split("/documents/", 1)[-1]
        fields = document.get("fields") or {}
        return DocumentSnapshot(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data={key: decode_value(value) for key, value in fields.items()},
        )

    async def list_documents(
        self, collection: str, *, order_by: str | None = None, descending: bool = False
    ) -> list[DocumentSnapshot]:
        parent, _, collection_id = collection.strip("/").rpartition("/")
        query: dict[str, Any] = {"from": [{"collectionId": collection_id}]}
        if order_by:
            query["orderBy"] = [
                {"field": {"fieldPath": order_by}, "direction": "DESCENDING" if descending else "ASCENDING"}
            ]
        response = await self._request("POST", f"{self._url(parent)}:runQuery", json={"structuredQuery": query})
        if response.status_code == 404:
            return []
        return [self._snapshot(row["document"]) for row in response.json() if row.get("document")]

    def subscribe(
        self,
        collection: str,
        listener: SnapshotListener,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Unsubscribe:
        async def _poll() -> None:
            last: list[tuple[str, Any]] | None = None
            while True:
                try:
                    snapshot = await self.list_documents(collection, order_by=order_by, descending=descending)
                except DocumentStoreError as exc:
                    logger.warning("Polling %s failed: %s", collection, exc.describe())
                except ValueError:
                    logger.exception("Polling %s returned an unreadable body", collection)
                else:
                    fingerprint = [(doc.id, doc.data) for doc in snapshot]
                    if fingerprint != last:
                        try:
                            listener(snapshot)
                        except Exception:
                            # Not marked as delivered, so the next poll retries it.
                            logger.exception("Snapshot listener for %s failed", collection)
                        else:
                            last = fingerprint
                await asyncio.sleep(self._config.poll_interval)

        def _on_done(task: asyncio.Task[None]) -> None:
            if not task.cancelled() and task.exception() is not None:
                logger.error("Polling %s stopped", collection, exc_info=task.exception())

        task = asyncio.get_running_loop().create_task(_poll())
        task.add_done_callback(_on_done)
        return task.cancel

    async def get_document(self, path: str) -> DocumentSnapshot:
        response = await self._request("GET", self._url(path))
        normalized = path.strip("/")
        if response.status_code == 404:
            return DocumentSnapshot(id=normalized.rsplit("/", 1)[-1], path=normalized, data=None)
        return self._snapshot(response.json())

    async def _commit(self, path: str, data: dict[str, Any]) -> None:
        fields = {key: encode_value(value) for key, value in data.items() if value is not SERVER_TIMESTAMP}
        transforms = [
            {"fieldPath": key, "setToServerValue": "REQUEST_TIME"}
            for key, value in data.items()
            if value is SERVER_TIMESTAMP
        ]
        write: dict[str, Any] = {"update": {"name": f"{self._root}/{path.strip('/')}", "fields": fields}}
        if transforms:
            write["updateTransforms"] = transforms
        response = await self._request("POST", f"{FIRESTORE_URL}/{self._root}:commit", json={"writes": [write]})
        if response.status_code == 404:
            raise DocumentStoreError(f"Parent of {path} not found", code="not-found")

    async def set_document(self, path: str, data: dict[str, Any]) -> None:
        await self._commit(path, data)

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = _auto_id()
        await self._commit(f"{collection.strip('/')}/{doc_id}", data)
        return doc_id

    async def delete_document(self, path: str) -> None:
        await self._request("DELETE", self._url(path))


class FirebaseStorageObjectStore(_HttpMixin):
    """Firebase Storage objects through the v0 REST API with resumable uploads."""

    def __init__(
        self,
        config: FirebaseConfig,
        *,
        token_provider: Callable[[], str | None] = lambda: None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._timeout = config.timeout
        self._token_provider = token_provider
        self.bucket = config.storage_bucket

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Firebase {token}"
        return headers

    def _object_url(self, path: str) -> str:
        return f"{STORAGE_URL}/b/{self.bucket}/o/{quote(path, safe='')}"

    async def _request(self, method: str, url: str, *, headers: dict[str, str] | None = None, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._send(method, url, headers=self._headers(headers), **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Storage %s %s failed", method, url)
            raise ObjectStoreError("Network error while contacting storage", code="storage/retry-limit-exceeded") from exc
        if response.status_code >= 400:
            code = {
                401: "storage/unauthenticated",
                403: "storage/unauthorized",
                404: "storage/object-not-found",
            }.get(response.status_code, "storage/unknown")
            raise ObjectStoreError(_error_message(response), code=code)
        return response

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
        start = await self._request(
            "POST",
            f"{STORAGE_URL}/b/{self.bucket}/o",
            params={"name": path, "uploadType": "resumable"},
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(total),
                "X-Goog-Upload-Header-Content-Type": content_type,
            },
            json={"name": path, "contentType": content_type},
        )
        session_url = start.headers.get("X-Goog-Upload-URL")
        if not session_url:
            raise ObjectStoreError("Upload session was not created", code="storage/unknown")

        offset = 0
        while True:
            chunk = payload[offset : offset + self._config.chunk_size]
            last = offset + len(chunk) >= total
            await self._request(
                "POST",
                session_url,
                headers={
                    "X-Goog-Upload-Protocol": "resumable",
                    "X-Goog-Upload-Command": "upload, finalize" if last else "upload",
                    "X-Goog-Upload-Offset": str(offset),
                },
                content=bytes(chunk),
            )
            offset += len(chunk)
            if on_progress is not None:
                on_progress(offset, total)
            if last:
                break

    async def update_content_type(self, path: str, content_type: str) -> None:
        await self._request("PATCH", self._object_url(path), json={"contentType": content_type})

    async def download_url(self, path: str) -> str:
        response = await self._request("GET", self._object_url(path))
        tokens = str(response.json().get("downloadTokens") or "")
        token = tokens.split(",", 1)[0].strip()
        if not token:
            raise ObjectStoreError(f"No download token for {path}", code="storage/no-download-url")
        return f"{self._object_url(path)}?alt=media&token={token}"

    async def delete(self, path: str) -> None:
        await self._request("DELETE", self._object_url(path))

    def ref_from_url(self, url: str) -> str:
        parsed = urlparse(url or "")
        if parsed.scheme == "gs" and parsed.netloc and parsed.path.strip("/"):
            return parsed.path.lstrip("/")
        if parsed.scheme in {"http", "https"} and parsed.netloc in STORAGE_HOSTS:
            prefix = f"/v0/b/{self.bucket}/o/"
            if parsed.path.startswith(prefix) and len(parsed.path) > len(prefix):
                return unquote(parsed.path[len(prefix):])
            plain_prefix = f"/{self.bucket}/"
            if parsed.netloc == "storage.googleapis.com" and parsed.path.startswith(plain_prefix):
                remainder = unquote(parsed.path[len(plain_prefix):])
                if remainder:
                    return remainder
        raise InvalidObjectReference()


__all__ = [
    "FirebaseConfig",
    "FirebaseConfigurationError",
    "FirebaseAuthClient",
    "FirestoreDocumentStore",
    "FirebaseStorageObjectStore",
    "encode_value",
    "decode_value",
]
