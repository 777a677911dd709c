"""Shared helpers for Courier models."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from uuid import uuid4


def generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix.

    Examples:
        generate_id("dst") -> "dst_a1b2c3d4e5f6"
        generate_id("dlv") -> "dlv_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid4().hex[:12]}"


def generate_secret(length: int = 64) -> str:
    """Generate a random URL-safe signing secret of exactly `length` chars."""
    return secrets.token_urlsafe(length)[:length]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
