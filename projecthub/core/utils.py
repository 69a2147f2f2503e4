"""
Shared utility functions for the projecthub API.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "user", "proj", "inv")

    Returns:
        A unique ID like "proj_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def generate_token(nbytes: int = 32) -> str:
    """Unguessable hex token (64 chars for the default 32 bytes)."""
    return secrets.token_hex(nbytes)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
