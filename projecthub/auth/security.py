# =============================================================================
# Credentials & Session Tokens
# =============================================================================
#
# This module provides:
#   - Password hashing (PBKDF2-SHA256, salted)
#   - Token creation (access + refresh) carrying user id, email and role
#   - Token validation
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hashlib
import logging
import secrets

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
import jwt

from projecthub.config import get_settings
from projecthub.core.models import Role
from projecthub.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

ACCESS = "access"
REFRESH = "refresh"


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """Decoded session claims."""
    sub: str  # user_id
    email: str
    role: Role
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    jti: str  # unique token ID


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=100_000
    )
    return f"{salt}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(':')
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=100_000
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Token Creation
# =============================================================================

def _encode(user_id: str, email: str, role: Role, token_type: str, lifetime: timedelta) -> str:
    now = utc_now()
    payload = {
        "sub": user_id,
        "email": email,
        "role": Role(role).value,
        "exp": now + lifetime,
        "iat": now,
        "type": token_type,
        "jti": generate_id("tok" if token_type == ACCESS else "rtok"),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, email: str, role: Role) -> str:
    """Create a short-lived JWT access token."""
    return _encode(
        user_id, email, role, ACCESS,
        timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, email: str, role: Role) -> str:
    """Create a JWT refresh token (longer-lived)."""
    return _encode(
        user_id, email, role, REFRESH,
        timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def create_token_pair(user_id: str, email: str, role: Role) -> TokenPair:
    """Create both access and refresh tokens."""
    return TokenPair(
        access_token=create_access_token(user_id, email, role),
        refresh_token=create_refresh_token(user_id, email, role),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


# =============================================================================
# Token Validation
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


def decode_token(token: str, expected_type: str = ACCESS) -> TokenPayload:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT string
        expected_type: "access" or "refresh"

    Returns:
        TokenPayload with validated claims

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

    try:
        return TokenPayload(
            sub=payload["sub"],
            email=payload["email"],
            role=Role(payload["role"]),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
            jti=payload.get("jti", ""),
        )
    except (KeyError, ValueError) as e:
        raise TokenInvalidError(f"Invalid token claims: {e}")
