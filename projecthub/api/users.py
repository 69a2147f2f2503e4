# =============================================================================
# User & Invite API Routes
# =============================================================================
#
# Endpoints:
#   GET    /api/users                      - List users (ADMIN)
#   POST   /api/users/invites/create       - Invite an email (ADMIN)
#   GET    /api/users/invites/status       - Check an invite token (public)
#   POST   /api/users/invites/decline      - Decline an invite (public)
#   GET    /api/users/invites              - List invites (ADMIN)
#   DELETE /api/users/invites/{invite_id}  - Revoke an invite (ADMIN)
#   GET    /api/users/{user_id}            - Get a user (ADMIN or self)
#   PATCH  /api/users/{user_id}/status     - Activate / deactivate (ADMIN)
#   PATCH  /api/users/{user_id}/role       - Change system role (ADMIN)
#
# Invite routes are declared before /{user_id} so "invites" is never
# taken for a user id.
#
# =============================================================================

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr
from pydantic.alias_generators import to_camel

from projecthub.api.deps import get_invite_service, get_user_service
from projecthub.api.responses import envelope
from projecthub.auth.context import Caller
from projecthub.auth.policies import get_caller
from projecthub.core.models import InviteStatus, Role, UserStatus
from projecthub.services.invites import InviteService
from projecthub.services.users import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


# =============================================================================
# Request Models
# =============================================================================

class RequestModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CreateInviteRequest(RequestModel):
    email: EmailStr
    role: Role = Role.STAFF
    project_id: str | None = None


class InviteTokenRequest(RequestModel):
    invite_token: str


class StatusUpdate(RequestModel):
    status: UserStatus = UserStatus.INACTIVE


class RoleUpdate(RequestModel):
    role: Role


# =============================================================================
# Users
# =============================================================================

@router.get("")
async def list_users(
    page: int = Query(1),
    limit: int | None = Query(None),
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    """All users, newest first, paginated."""
    items, pagination = await users.list_users(caller, page=page, limit=limit)
    return envelope(
        [u.to_response() for u in items],
        pagination=pagination.to_response(),
    )


# =============================================================================
# Invites
# =============================================================================

@router.post("/invites/create", status_code=201)
async def create_invite(
    data: CreateInviteRequest,
    caller: Caller = Depends(get_caller),
    invites: InviteService = Depends(get_invite_service),
):
    invite = await invites.create(caller, data.email, data.role, data.project_id)
    return envelope(invite.to_response(), "Invite created successfully")


@router.get("/invites/status")
async def invite_status(
    invite_token: str | None = Query(None, alias="inviteToken"),
    invites: InviteService = Depends(get_invite_service),
):
    """
    Check whether an invite token can still be used.

    Public: the token itself is the credential.
    """
    invite = await invites.lookup(invite_token)
    return envelope({
        "email": invite.email,
        "role": invite.role.value,
        "expiresAt": invite.to_response()["expiresAt"],
    })


@router.post("/invites/decline")
async def decline_invite(
    data: InviteTokenRequest,
    invites: InviteService = Depends(get_invite_service),
):
    await invites.decline(data.invite_token)
    return envelope(message="Invite declined")


@router.get("/invites")
async def list_invites(
    status: InviteStatus | None = Query(None),
    caller: Caller = Depends(get_caller),
    invites: InviteService = Depends(get_invite_service),
):
    return envelope(await invites.list_invites(caller, status))


@router.delete("/invites/{invite_id}")
async def revoke_invite(
    invite_id: str,
    caller: Caller = Depends(get_caller),
    invites: InviteService = Depends(get_invite_service),
):
    invite = await invites.revoke(caller, invite_id)
    return envelope(invite.to_response(), "Invite revoked successfully")


# =============================================================================
# Single user
# =============================================================================

@router.get("/{user_id}")
async def get_user(
    user_id: str,
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    user = await users.get_user(caller, user_id)
    return envelope(user.to_response())


@router.patch("/{user_id}/status")
async def set_user_status(
    user_id: str,
    data: StatusUpdate | None = None,
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    """Set ACTIVE / INACTIVE. With no body the user is deactivated."""
    status = data.status if data else UserStatus.INACTIVE
    user = await users.set_status(caller, user_id, status)
    message = "User deactivated successfully" if status == UserStatus.INACTIVE else "User activated successfully"
    return envelope(user.to_response(), message)


@router.patch("/{user_id}/role")
async def change_user_role(
    user_id: str,
    data: RoleUpdate,
    caller: Caller = Depends(get_caller),
    users: UserService = Depends(get_user_service),
):
    user = await users.change_role(caller, user_id, data.role)
    return envelope(user.to_response(), "User role updated successfully")
