"""
Authentication and authorization.

Design principles:
1. One decision function, `authorize()`, for every access check
2. System role for administration, project ownership for everything else
3. Services check access against freshly loaded resources
4. Route handlers only resolve the caller
"""

from projecthub.auth.context import Caller
from projecthub.auth.capabilities import (
    Action,
    SYSTEM_ROLE_ACTIONS,
    role_allows,
)
from projecthub.auth.policies import (
    DenyKind,
    Verdict,
    authorize,
    ensure,
    get_caller,
)
from projecthub.auth.security import (
    TokenPair,
    TokenPayload,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Main interface
    "authorize",
    "ensure",
    "get_caller",
    "Caller",
    # Types
    "Action",
    "DenyKind",
    "Verdict",
    "SYSTEM_ROLE_ACTIONS",
    "role_allows",
    # Tokens
    "TokenPair",
    "TokenPayload",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "create_token_pair",
    "decode_token",
    "hash_password",
    "verify_password",
]
