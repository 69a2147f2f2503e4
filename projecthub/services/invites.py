"""
Invitation lifecycle.

    PENDING ──accept──▶ ACCEPTED
       │ ├──decline──▶ DECLINED
       │ ├──revoke───▶ REVOKED
       └─┴──(expiry)─▶ EXPIRED

Only PENDING has outgoing transitions. Each transition is a conditional
update on `status == PENDING`, so two requests racing on one invite
cannot both succeed.

Expiry is lazy: there is no sweeper. Every path that reads an invite
by token (or lists them) moves an overdue PENDING invite to EXPIRED
before using it.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Awaitable, Callable

from projecthub.auth.capabilities import Action
from projecthub.auth.context import Caller
from projecthub.auth.policies import ensure
from projecthub.config import get_settings
from projecthub.core.errors import NotFoundError, ValidationError
from projecthub.core.models import Invite, InviteStatus, Role, User
from projecthub.core.utils import ensure_aware, generate_token, utc_now
from projecthub.integrations.email import EmailService, get_email_service
from projecthub.storage.base import Collections, DuplicateKeyError, StorageProvider

logger = logging.getLogger(__name__)

PENDING_ONLY = {"status": InviteStatus.PENDING.value}


class InviteService:
    """Creates invites and drives them through their states."""

    def __init__(self, storage: StorageProvider, email: EmailService | None = None):
        self.storage = storage
        self.metadata = storage.metadata
        self.email = email or get_email_service()
        self.settings = get_settings()

    # =========================================================================
    # Loading
    # =========================================================================

    async def _get(self, invite_id: str) -> Invite | None:
        doc = await self.metadata.get(Collections.INVITES, invite_id)
        return Invite.model_validate(doc) if doc else None

    async def _get_by_token(self, token: str) -> Invite | None:
        doc = await self.metadata.find_one(Collections.INVITES, {"invite_token": token})
        return Invite.model_validate(doc) if doc else None

    async def _transition(self, invite: Invite, status: InviteStatus, **fields) -> Invite:
        """Move a PENDING invite to `status`; fail if it already left PENDING."""
        updates = {"status": status.value, "updated_at": utc_now(), **fields}
        moved = await self.metadata.update(Collections.INVITES, invite.id, updates, where=PENDING_ONLY)
        if not moved:
            current = await self._get(invite.id)
            if current is None:
                raise NotFoundError("Invite not found")
            raise ValidationError(f"Invite has been {current.status.value.lower()}")
        logger.info(f"Invite {invite.id} for {invite.email}: {invite.status.value} -> {status.value}")
        return invite.model_copy(update={"status": status, **fields})

    async def _expire_if_due(self, invite: Invite) -> bool:
        """Persist EXPIRED for an overdue PENDING invite. Returns True if it is expired now."""
        if not (invite.is_pending and invite.is_past_expiry()):
            return invite.status == InviteStatus.EXPIRED
        moved = await self.metadata.update(
            Collections.INVITES,
            invite.id,
            {"status": InviteStatus.EXPIRED.value, "updated_at": utc_now()},
            where=PENDING_ONLY,
        )
        if moved:
            logger.info(f"Invite {invite.id} for {invite.email} expired")
            return True
        # Someone else moved it first; report whatever it is now
        current = await self._get(invite.id)
        return current is not None and current.status == InviteStatus.EXPIRED

    async def _release(self, invite: Invite) -> InviteStatus | None:
        """
        Undo an unlinked ACCEPTED claim.

        Goes back to PENDING, or to EXPIRED when overdue or when a newer
        PENDING invite now holds the email. Returns the status written,
        or None if the claim was already linked or moved.
        """
        claimed = {"status": InviteStatus.ACCEPTED.value, "accepted_by": None}
        status = InviteStatus.EXPIRED if invite.is_past_expiry() else InviteStatus.PENDING
        try:
            moved = await self.metadata.update(
                Collections.INVITES,
                invite.id,
                {"status": status.value, "updated_at": utc_now()},
                where=claimed,
            )
        except DuplicateKeyError:
            status = InviteStatus.EXPIRED
            moved = await self.metadata.update(
                Collections.INVITES,
                invite.id,
                {"status": status.value, "updated_at": utc_now()},
                where=claimed,
            )
        return status if moved else None

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        caller: Caller,
        email: str,
        role: Role = Role.STAFF,
        project_id: str | None = None,
    ) -> Invite:
        """
        Invite an email address to register with `role`.

        Only system ADMINs may invite. The email must not belong to a
        user or to another PENDING invite.
        """
        ensure(caller, Action.INVITE_CREATE)
        email = email.strip().lower()

        if await self.metadata.find_one(Collections.USERS, {"email": email}):
            raise ValidationError("User with this email already exists")

        if project_id:
            project = await self.metadata.get(Collections.PROJECTS, project_id)
            if not project or project.get("is_deleted"):
                raise NotFoundError("Project not found")

        # An overdue PENDING invite for this email should not block a new one
        pending = await self.metadata.query(Collections.INVITES, {"email": email, **PENDING_ONLY}, limit=None)
        for doc in pending:
            await self._expire_if_due(Invite.model_validate(doc))

        now = utc_now()
        invite = Invite(
            email=email,
            invited_by=caller.user_id,
            role=role,
            invite_token=generate_token(),
            expires_at=now + timedelta(days=self.settings.invite_expire_days),
            project_id=project_id,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.metadata.insert(Collections.INVITES, invite.id, invite.to_document())
        except DuplicateKeyError:
            # Partial unique index on (email) for PENDING invites
            raise ValidationError("Invite already sent to this email")

        logger.info(f"Invite {invite.id} created for {email} as {role.value} by {caller.user_id}")

        await self.email.send_invite(
            email=invite.email,
            role=invite.role.value,
            invite_token=invite.invite_token,
            expires_at=invite.expires_at.isoformat(),
        )
        return invite

    # =========================================================================
    # Token lookups
    # =========================================================================

    async def lookup(self, token: str | None) -> Invite:
        """
        Resolve a usable (PENDING, unexpired) invite by token.

        Raises:
            ValidationError: blank token, expired, or no longer pending
            NotFoundError: no invite has this token
        """
        if not token or not isinstance(token, str):
            raise ValidationError("Invalid invite token")

        invite = await self._get_by_token(token)
        if invite is None:
            raise NotFoundError("Invite not found or has been revoked")

        if invite.is_pending and await self._expire_if_due(invite):
            raise ValidationError("Invite has expired")

        if not invite.is_pending:
            raise ValidationError(f"Invite has been {invite.status.value.lower()}")

        return invite

    async def accept(
        self,
        token: str,
        email: str,
        create_user: Callable[[Invite], Awaitable[User]],
    ) -> tuple[Invite, User]:
        """
        Accept an invite by registering its user.

        Two phases:
          1. claim: PENDING -> ACCEPTED (conditional), so nobody else
             can use or revoke the token meanwhile
          2. create the user, then record accepted_by / accepted_at

        If user creation fails the claim is released back to PENDING.
        A crash between the phases leaves an ACCEPTED invite without
        accepted_by; reconcile() repairs those.
        """
        invite = await self.lookup(token)
        if invite.email != email.strip().lower():
            raise ValidationError("Invalid or expired invitation")

        invite = await self._transition(invite, InviteStatus.ACCEPTED)

        try:
            user = await create_user(invite)
        except Exception:
            status = await self._release(invite)
            if status:
                logger.warning(f"Invite {invite.id} released to {status.value} after failed registration")
            raise

        accepted_at = utc_now()
        await self.metadata.update(
            Collections.INVITES,
            invite.id,
            {"accepted_by": user.id, "accepted_at": accepted_at, "updated_at": accepted_at},
        )
        logger.info(f"Invite {invite.id} accepted by {user.id}")
        return invite.model_copy(update={"accepted_by": user.id, "accepted_at": accepted_at}), user

    async def decline(self, token: str | None) -> Invite:
        """The invitee turns the invite down."""
        invite = await self.lookup(token)
        return await self._transition(invite, InviteStatus.DECLINED)

    # =========================================================================
    # Admin operations
    # =========================================================================

    async def revoke(self, caller: Caller, invite_id: str) -> Invite:
        ensure(caller, Action.INVITE_REVOKE)

        invite = await self._get(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found")

        if invite.is_pending and await self._expire_if_due(invite):
            raise ValidationError("Only pending invites can be revoked")
        if not invite.is_pending:
            raise ValidationError("Only pending invites can be revoked")

        try:
            return await self._transition(invite, InviteStatus.REVOKED)
        except ValidationError:
            raise ValidationError("Only pending invites can be revoked")

    async def list_invites(self, caller: Caller, status: InviteStatus | None = None) -> list[dict]:
        """
        All invites, newest first, with the inviter expanded.

        Overdue PENDING invites are expired before filtering.
        """
        ensure(caller, Action.INVITE_LIST)

        for doc in await self.metadata.query(Collections.INVITES, PENDING_ONLY, limit=None):
            await self._expire_if_due(Invite.model_validate(doc))

        filters = {"status": InviteStatus(status).value} if status else None
        docs = await self.metadata.query(
            Collections.INVITES, filters, sort_by="created_at", descending=True, limit=None,
        )
        invites = [Invite.model_validate(d) for d in docs]

        inviters: dict[str, dict | None] = {}
        for invite in invites:
            if invite.invited_by not in inviters:
                user = await self.metadata.get(Collections.USERS, invite.invited_by)
                inviters[invite.invited_by] = (
                    {"id": user["id"], "name": user["name"], "email": user["email"]} if user else None
                )

        return [
            {**invite.to_response(), "invitedBy": inviters[invite.invited_by] or invite.invited_by}
            for invite in invites
        ]

    # =========================================================================
    # Repair
    # =========================================================================

    async def reconcile(self, older_than: timedelta = timedelta(minutes=5)) -> dict[str, int]:
        """
        Finish or undo accepts interrupted between claim and link.

        An ACCEPTED invite without accepted_by is linked to the user
        registered with its email; if there is no such user the claim
        is released (to EXPIRED when overdue, else PENDING). Invites
        touched within `older_than` are left alone, as their accept may
        still be in flight.
        """
        cutoff = utc_now() - older_than
        counts = {"linked": 0, "released": 0}

        docs = await self.metadata.query(
            Collections.INVITES,
            {"status": InviteStatus.ACCEPTED.value, "accepted_by": None},
            limit=None,
        )
        for doc in docs:
            invite = Invite.model_validate(doc)
            if ensure_aware(invite.updated_at) > cutoff:
                continue

            user = await self.metadata.find_one(Collections.USERS, {"email": invite.email})
            if user:
                await self.metadata.update(
                    Collections.INVITES,
                    invite.id,
                    {"accepted_by": user["id"], "accepted_at": user.get("created_at") or utc_now()},
                    where={"accepted_by": None},
                )
                counts["linked"] += 1
                logger.warning(f"Reconciled invite {invite.id}: linked to {user['id']}")
                continue

            status = await self._release(invite)
            if status is None:
                continue
            counts["released"] += 1
            logger.warning(f"Reconciled invite {invite.id}: released to {status.value}")

        return counts
