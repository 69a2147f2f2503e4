"""
API error taxonomy.

Services raise these; the HTTP layer catches them in one place
(projecthub.api.errors) and renders the response envelope.
"""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base error carrying an HTTP status and optional field errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.status_code}, {self.message!r})"


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class InternalServerError(ApiError):
    status_code = 500
    default_message = "Internal server error"
