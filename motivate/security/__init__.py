"""Credential validation helpers."""
