"""
Exception handlers.

Services raise `ApiError` subclasses (and storage / token errors); they
are turned into the response envelope here and nowhere else.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from projecthub.api.responses import error_body
from projecthub.auth.security import TokenExpiredError, TokenInvalidError
from projecthub.config import get_settings
from projecthub.core.errors import ApiError
from projecthub.integrations.sentry import capture_exception
from projecthub.storage.base import DuplicateKeyError

log = logging.getLogger(__name__)


def _field_errors(errors: list[dict]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into {field, message} pairs."""
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        result.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return result


def _respond(request: Request, status_code: int, message: str, errors=None, **extra) -> JSONResponse:
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    log.log(level, "%s %s -> %s | %s", request.method, request.url.path, status_code, message)
    return JSONResponse(status_code=status_code, content=error_body(message, errors, **extra))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope error handlers on `app`."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            capture_exception(exc, path=request.url.path)
        return _respond(request, exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _respond(request, 400, "Validation failed", _field_errors(exc.errors()))

    @app.exception_handler(PydanticValidationError)
    async def model_validation_handler(request: Request, exc: PydanticValidationError):
        return _respond(request, 400, "Validation error", _field_errors(exc.errors()))

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        return _respond(request, 409, f"Duplicate value for {', '.join(exc.fields)}")

    @app.exception_handler(TokenExpiredError)
    async def token_expired_handler(request: Request, exc: TokenExpiredError):
        return _respond(request, 401, "Token expired")

    @app.exception_handler(TokenInvalidError)
    async def token_invalid_handler(request: Request, exc: TokenInvalidError):
        return _respond(request, 401, "Invalid token")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return _respond(request, exc.status_code, message)

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        log.exception("Unhandled exception %s %s", request.method, request.url.path)
        capture_exception(exc, path=request.url.path)

        extra = {}
        if not get_settings().is_production:
            extra["error"] = str(exc)
        return JSONResponse(status_code=500, content=error_body("Internal server error", **extra))
