"""Hashtag parsing for upload forms and display."""
from __future__ import annotations

import re
from typing import Iterable

MAX_TAGS = 20

_SEPARATORS = re.compile(r"[\s,]+")


def parse_hashtags(text: str | None) -> list[str]:
    """Turn free text like ``"#drive, power focus"`` into ``["drive", "power", "focus"]``.

    Splits on whitespace and commas, drops one leading ``#``, lowercases,
    deduplicates in first-seen order and keeps at most :data:`MAX_TAGS`.
    """

    return normalize_tags(_SEPARATORS.split(text or ""))


def normalize_tags(values: Iterable[object] | None) -> list[str]:
    seen: dict[str, None] = {}
    for raw in values or ():
        if not isinstance(raw, str):
            continue
        tag = raw.strip()
        if tag.startswith("#"):
            tag = tag[1:]
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen[tag] = None
    return list(seen)[:MAX_TAGS]


def format_hashtags(tags: Iterable[str] | None) -> str:
    return " ".join(f"#{tag}" for tag in tags or ())


__all__ = ["MAX_TAGS", "parse_hashtags", "normalize_tags", "format_hashtags"]
