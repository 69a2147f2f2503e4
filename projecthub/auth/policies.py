"""
Policies - the single place access decisions are made.

Services call `ensure(caller, action, resource)` after loading a fresh
copy of the resource. Route handlers get the caller from
`Depends(get_caller)`.

Design:
- `authorize()` is a pure function: caller + action + resource
  snapshot in, `Verdict` out. No storage access.
- Denials carry a kind (401 / 403 / 400) and a human-readable reason.
- System ADMIN may read and soft-delete any project, but project
  updates and roster changes belong to the project's own admin only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from projecthub.auth.capabilities import (
    Action,
    AUTHENTICATED_ACTIONS,
    ROLE_GATED_ACTIONS,
    role_allows,
)
from projecthub.auth.context import Caller
from projecthub.auth.security import decode_token
from projecthub.core.errors import ForbiddenError, UnauthorizedError, ValidationError
from projecthub.core.models import Project, User, UserStatus


# =============================================================================
# Verdict
# =============================================================================


class DenyKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"  # 401
    FORBIDDEN = "forbidden"              # 403
    INVALID = "invalid"                  # 400


_DENY_ERRORS = {
    DenyKind.UNAUTHENTICATED: UnauthorizedError,
    DenyKind.FORBIDDEN: ForbiddenError,
    DenyKind.INVALID: ValidationError,
}


@dataclass(frozen=True)
class Verdict:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None
    kind: DenyKind | None = None

    @classmethod
    def allow(cls) -> Verdict:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, kind: DenyKind = DenyKind.FORBIDDEN) -> Verdict:
        return cls(allowed=False, reason=reason, kind=kind)

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        """Raise the matching ApiError if denied."""
        if self.allowed:
            return
        raise _DENY_ERRORS[self.kind](self.reason)


# Denial messages per action
DENY_REASONS: dict[Action, str] = {
    Action.USER_LIST: "Only admins can view all users",
    Action.USER_READ: "You don't have permission to view this user",
    Action.USER_UPDATE_ROLE: "Only admins can change user roles",
    Action.USER_UPDATE_STATUS: "Only admins can change user status",
    Action.INVITE_CREATE: "Only admins can create invites",
    Action.INVITE_LIST: "Only admins can list invites",
    Action.INVITE_REVOKE: "Only admins can revoke invites",
    Action.MAINTENANCE_RECONCILE: "Only admins can run maintenance",
    Action.PROJECT_READ: "You don't have access to this project",
    Action.PROJECT_UPDATE: "Only project admin can update project",
    Action.PROJECT_DELETE: "Only admin or project creator can delete project",
    Action.PROJECT_ADD_MEMBER: "Only project admin can add team members",
    Action.PROJECT_REMOVE_MEMBER: "Only project admin can remove team members",
    Action.TASK_CREATE: "You don't have access to this project",
    Action.TASK_LIST: "You don't have access to this project",
}

PROJECT_READERS = {Action.PROJECT_READ, Action.TASK_CREATE, Action.TASK_LIST}
PROJECT_ADMIN_ONLY = {Action.PROJECT_UPDATE, Action.PROJECT_ADD_MEMBER, Action.PROJECT_REMOVE_MEMBER}


# =============================================================================
# Decision function
# =============================================================================


def _target_user_id(resource: Any) -> str | None:
    if isinstance(resource, User):
        return resource.id
    return resource


def _forbid(action: Action) -> Verdict:
    return Verdict.deny(DENY_REASONS.get(action, "Insufficient permissions"))


def _authorize_project(caller: Caller, action: Action, project: Project) -> Verdict:
    if action in PROJECT_READERS:
        if caller.is_admin or project.involves(caller.user_id):
            return Verdict.allow()
        return _forbid(action)

    if action in PROJECT_ADMIN_ONLY:
        # No system-role bypass here
        if project.is_admin(caller.user_id):
            return Verdict.allow()
        return _forbid(action)

    if action == Action.PROJECT_DELETE:
        if caller.is_admin or project.is_admin(caller.user_id) or project.is_creator(caller.user_id):
            return Verdict.allow()
        return _forbid(action)

    raise ValueError(f"{action.value} is not a project action")


def authorize(
    caller: Caller,
    action: Action | str,
    resource: Any = None,
    changes: dict[str, Any] | None = None,
) -> Verdict:
    """
    Decide whether `caller` may perform `action` on `resource`.

    Args:
        caller: Who is asking
        action: What they want to do
        resource: Snapshot of the target - a Project for project/task
            actions, a User or user id for user actions
        changes: Requested field changes, where the rule depends on them

    Returns:
        Verdict (truthy when allowed)
    """
    action = Action(action)

    if caller.is_anonymous:
        return Verdict.deny("Authentication required", DenyKind.UNAUTHENTICATED)

    if action in AUTHENTICATED_ACTIONS:
        return Verdict.allow()

    if action == Action.USER_READ:
        if caller.is_admin or caller.is_self(_target_user_id(resource)):
            return Verdict.allow()
        return _forbid(action)

    if action in ROLE_GATED_ACTIONS:
        if not role_allows(caller.role, action):
            return _forbid(action)
        if action == Action.USER_UPDATE_STATUS and caller.is_self(_target_user_id(resource)):
            new_status = (changes or {}).get("status", UserStatus.INACTIVE)
            if UserStatus(new_status) == UserStatus.INACTIVE:
                return Verdict.deny("Cannot deactivate your own account", DenyKind.INVALID)
        return Verdict.allow()

    if not isinstance(resource, Project):
        raise ValueError(f"{action.value} requires a project snapshot")
    return _authorize_project(caller, action, resource)


def ensure(
    caller: Caller,
    action: Action | str,
    resource: Any = None,
    changes: dict[str, Any] | None = None,
) -> None:
    """authorize() and raise the mapped ApiError if denied."""
    authorize(caller, action, resource, changes).raise_for_denial()


# =============================================================================
# FastAPI dependencies
# =============================================================================


# Optional bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "accessToken"


async def get_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> Caller:
    """
    Resolve the caller from the access token.

    Handles:
    - `Authorization: Bearer <token>` header
    - `accessToken` cookie

    No token gives an anonymous caller; a bad token raises
    TokenExpiredError / TokenInvalidError (mapped to 401 upstream).
    """
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        return Caller.anonymous()

    payload = decode_token(token, expected_type="access")
    return Caller(user_id=payload.sub, email=payload.email, role=payload.role)

