"""
Response envelope.

Every endpoint answers with

    {"success": bool, "message"?: str, "data"?: ..., "errors"?: [...]}

plus `pagination` on paged listings.
"""

from __future__ import annotations

from typing import Any


def envelope(data: Any = None, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Successful response body."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def error_body(message: str, errors: Any = None, **extra: Any) -> dict[str, Any]:
    """Failed response body."""
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body
