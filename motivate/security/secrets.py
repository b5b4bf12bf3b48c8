"""Reject blank or stock placeholder credentials before a client is built."""
from __future__ import annotations

from typing import Final, Mapping

__all__ = ["PLACEHOLDER_VALUES", "is_placeholder", "missing_settings"]

PLACEHOLDER_VALUES: Final[frozenset[str]] = frozenset(
    {"changeme", "change-me", "placeholder", "example", "your-api-key", "your-project-id", "your-key-here"}
)


def is_placeholder(value: str | None) -> bool:
    normalized = (value or "").strip().lower()
    return not normalized or normalized in PLACEHOLDER_VALUES


def missing_settings(values: Mapping[str, str | None]) -> list[str]:
    """Environment names from ``values`` that are unset or still placeholders, sorted."""

    return sorted(name for name, value in values.items() if is_placeholder(value))
