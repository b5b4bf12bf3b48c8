"""Convenience exports for ORM models."""
from .preference import LocalPreference

__all__ = ["LocalPreference"]
