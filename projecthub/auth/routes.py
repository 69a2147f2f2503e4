# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /api/auth/register  - Create account (optionally from an invite)
#   POST /api/auth/login     - Get tokens
#   POST /api/auth/refresh   - Refresh tokens
#   POST /api/auth/logout    - Client discards tokens
#   GET  /api/auth/profile   - Current user
#   PUT  /api/auth/profile   - Update current user
#
# =============================================================================

import re

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from projecthub.api.deps import get_user_service
from projecthub.api.responses import envelope
from projecthub.auth.context import Caller
from projecthub.auth.policies import get_caller
from projecthub.services.users import UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================

class RequestModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1)


PASSWORD_RULES = [
    (r"[A-Z]", "Password must contain at least one uppercase letter"),
    (r"[a-z]", "Password must contain at least one lowercase letter"),
    (r"\d", "Password must contain at least one number"),
    (r"[@$!%*?&]", "Password must contain at least one special character"),
]


class RegisterRequest(RequestModel):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)
    invite_token: str | None = None

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        for pattern, message in PASSWORD_RULES:
            if not re.search(pattern, v):
                raise ValueError(message)
        return v


class RefreshRequest(RequestModel):
    refresh_token: str


class ProfileUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=2)


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=201)
async def register(data: RegisterRequest, users: UserService = Depends(get_user_service)):
    """
    Create a new account.

    With `inviteToken` the account takes the invite's role; without
    one it is STAFF. Returns tokens on success.
    """
    session = await users.register(data.name, data.email, data.password, data.invite_token)
    return envelope(session.to_response(), "Registration successful")


@router.post("/login")
async def login(data: LoginRequest, users: UserService = Depends(get_user_service)):
    """Authenticate and get tokens."""
    session = await users.login(data.email, data.password)
    return envelope(session.to_response(), "Login successful")


@router.post("/refresh")
async def refresh(data: RefreshRequest, users: UserService = Depends(get_user_service)):
    """Use a refresh token to get a new token pair."""
    tokens = await users.refresh(data.refresh_token)
    return envelope(tokens.model_dump(by_alias=True))


@router.post("/logout")
async def logout():
    """
    Logout (client should discard tokens).

    Tokens are stateless; nothing is revoked server-side.
    """
    return envelope(message="Logged out successfully")


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.get("/profile")
async def get_profile(
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    user = await users.get_profile(caller)
    return envelope(user.to_response())


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_profile(caller, name=data.name)
    return envelope(user.to_response(), "Profile updated successfully")
