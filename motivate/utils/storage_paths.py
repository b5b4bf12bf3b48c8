"""Helpers for naming uploaded objects and recovering their storage paths."""
from __future__ import annotations

import re
import time
from pathlib import PurePosixPath
from urllib.parse import unquote

VIDEO_FOLDER = "videos"
FALLBACK_NAME = "video"

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(name: str) -> str:
    """Return ``name`` reduced to ``[A-Za-z0-9._-]`` with whitespace runs as ``_``.

    >>> sanitize_filename("My Video!!.mp4")
    'My_Video.mp4'
    """

    cleaned = _UNSAFE.sub("", _WHITESPACE.sub("_", name or ""))
    return cleaned or FALLBACK_NAME


def default_title(filename: str) -> str:
    """Strip the final extension from ``filename`` to seed an editable title."""

    return re.sub(r"\.[^/.]+$", "", filename or "")


def build_object_path(filename: str, index: int, *, now_ms: int | None = None) -> str:
    """Build ``videos/{epochMillis}-{index}-{safeName}`` for one file of a batch."""

    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{VIDEO_FOLDER}/{stamp}-{index}-{sanitize_filename(filename)}"


def storage_path_from_url(url: str | None) -> str | None:
    """Recover an object path from the encoded ``/o/<path>?`` segment of a download URL.

    Returns ``None`` when the URL has no such segment or it decodes to nothing.
    """

    if not url or "/o/" not in url:
        return None
    encoded = url.split("/o/", 1)[1].split("?", 1)[0].split("#", 1)[0]
    if not encoded:
        return None
    decoded = unquote(encoded).strip()
    if not decoded or decoded.endswith("/"):
        return None
    parts = PurePosixPath(decoded).parts
    if any(part in {".", ".."} for part in parts):
        return None
    return decoded


__all__ = [
    "VIDEO_FOLDER",
    "sanitize_filename",
    "default_title",
    "build_object_path",
    "storage_path_from_url",
]
