"""DigitalOcean Spaces (S3-compatible) object store adapter."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO
from urllib.parse import quote, unquote, urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from ..config import Settings
from ..security.secrets import missing_settings
from .remote_store import InvalidObjectReference, ObjectStoreError, ProgressCallback

logger = logging.getLogger(__name__)

PUBLIC_ACL = "public-read"


class SpacesConfigurationError(RuntimeError):
    """Raised when required DigitalOcean Spaces settings are missing or invalid."""


def _public_endpoint(raw: str) -> str:
    # Bare hostnames are served over https.
    endpoint = raw.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = "https://" + endpoint.lstrip(":/")
    parsed = urlparse(endpoint)
    if not parsed.netloc:
        raise SpacesConfigurationError("DO_SPACES_ENDPOINT must include a hostname.")
    return parsed.geturl().rstrip("/")


@dataclass(frozen=True)
class SpacesConfig:
    key: str
    secret: str
    region: str
    bucket: str
    api_endpoint: str
    public_endpoint: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "SpacesConfig":
        missing = missing_settings(
            {
                "DO_SPACES_KEY": settings.spaces_key,
                "DO_SPACES_SECRET": settings.spaces_secret,
                "DO_SPACES_REGION": settings.spaces_region,
                "DO_SPACES_NAME": settings.spaces_bucket,
                "DO_SPACES_ENDPOINT": settings.spaces_endpoint,
            }
        )
        if missing:
            raise SpacesConfigurationError("Missing required DigitalOcean Spaces configuration: " + ", ".join(missing))

        region = str(settings.spaces_region).strip()
        return cls(
            key=str(settings.spaces_key).strip(),
            secret=str(settings.spaces_secret).strip(),
            region=region,
            bucket=str(settings.spaces_bucket).strip(),
            api_endpoint=f"https://{region}.digitaloceanspaces.com",
            public_endpoint=_public_endpoint(str(settings.spaces_endpoint)),
        )

    def create_client(self) -> BaseClient:
        return Session().client(
            "s3",
            region_name=self.region,
            endpoint_url=self.api_endpoint,
            aws_access_key_id=self.key,
            aws_secret_access_key=self.secret,
        )


def _translate(exc: Exception, path: str) -> ObjectStoreError:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        raw_code = str(error.get("Code", ""))
        code = {
            "NoSuchKey": "storage/object-not-found",
            "404": "storage/object-not-found",
            "NotFound": "storage/object-not-found",
            "AccessDenied": "storage/unauthorized",
            "403": "storage/unauthorized",
        }.get(raw_code, "storage/unknown")
        return ObjectStoreError(str(error.get("Message") or raw_code or exc), code=code)
    return ObjectStoreError(f"Storage request for {path} failed: {exc}", code="storage/unknown")


class SpacesObjectStore:
    """``ObjectStore`` over a Spaces bucket; blocking boto3 calls run in the threadpool."""

    def __init__(self, config: SpacesConfig, *, client: BaseClient | None = None) -> None:
        self._config = config
        self._client = client
        self.bucket = config.bucket

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = self._config.create_client()
        return self._client

    async def _call(self, path: str, func, /, **kwargs):
        def _run():
            try:
                return func(**kwargs)
            except (ClientError, BotoCoreError) as exc:
                logger.warning("Spaces call %s failed for %s: %s", getattr(func, "__name__", func), path, exc)
                raise _translate(exc, path) from exc

        return await run_in_threadpool(_run)

    async def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        payload = bytes(data) if isinstance(data, (bytes, bytearray)) else data.read()
        total = len(payload)
        loop = asyncio.get_running_loop()
        transferred = 0

        def _callback(amount: int) -> None:
            nonlocal transferred
            transferred += amount
            if on_progress is not None:
                loop.call_soon_threadsafe(on_progress, min(transferred, total), total)

        await self._call(
            path,
            self.client.upload_fileobj,
            Fileobj=BytesIO(payload),
            Bucket=self.bucket,
            Key=path,
            ExtraArgs={"ACL": PUBLIC_ACL, "ContentType": content_type},
            Callback=_callback,
        )
        if total == 0 and on_progress is not None:
            on_progress(0, 0)

    async def update_content_type(self, path: str, content_type: str) -> None:
        await self._call(
            path,
            self.client.copy_object,
            Bucket=self.bucket,
            Key=path,
            CopySource={"Bucket": self.bucket, "Key": path},
            ContentType=content_type,
            MetadataDirective="REPLACE",
            ACL=PUBLIC_ACL,
        )

    def public_url(self, path: str) -> str:
        normalized = path.lstrip("/")
        return f"{self._config.public_endpoint}/{quote(normalized)}"

    async def download_url(self, path: str) -> str:
        await self._call(path, self.client.head_object, Bucket=self.bucket, Key=path)
        return self.public_url(path)

    async def delete(self, path: str) -> None:
        await self._call(path, self.client.delete_object, Bucket=self.bucket, Key=path)

    def ref_from_url(self, url: str) -> str:
        parsed = urlparse(url or "")
        public_host = urlparse(self._config.public_endpoint).netloc
        if parsed.scheme in {"http", "https"} and parsed.netloc == public_host:
            path = unquote(parsed.path).lstrip("/")
            if path:
                return path
        raise InvalidObjectReference()


__all__ = [
    "SpacesConfig",
    "SpacesConfigurationError",
    "SpacesObjectStore",
]
