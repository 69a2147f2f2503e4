"""
User accounts: sign-in, registration, profile and user administration.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from projecthub.auth.capabilities import Action
from projecthub.auth.context import Caller
from projecthub.auth.policies import ensure
from projecthub.auth.security import (
    REFRESH,
    TokenPair,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from projecthub.config import get_settings
from projecthub.core.errors import ConflictError, NotFoundError, UnauthorizedError
from projecthub.core.models import Invite, Role, User, UserInDB, UserStatus
from projecthub.core.utils import utc_now
from projecthub.services.invites import InviteService
from projecthub.storage.base import Collections, DuplicateKeyError, StorageProvider

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Tokens issued for a user at login or registration."""

    tokens: TokenPair
    user: User

    def to_response(self) -> dict:
        return {
            "accessToken": self.tokens.access_token,
            "refreshToken": self.tokens.refresh_token,
            "user": self.user.to_response(),
        }


@dataclass
class Page:
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    def to_response(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "hasNextPage": self.page < self.total_pages,
            "hasPrevPage": self.page > 1,
        }


def _issue(user: User) -> TokenPair:
    return create_token_pair(user.id, user.email, user.role)


class UserService:
    """Accounts backed by the `users` collection."""

    def __init__(self, storage: StorageProvider, invites: InviteService | None = None):
        self.storage = storage
        self.metadata = storage.metadata
        self.invites = invites or InviteService(storage)
        self.settings = get_settings()

    async def _load(self, user_id: str) -> UserInDB | None:
        doc = await self.metadata.get(Collections.USERS, user_id)
        return UserInDB.model_validate(doc) if doc else None

    async def _require(self, user_id: str) -> UserInDB:
        user = await self._load(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_by_email(self, email: str) -> UserInDB | None:
        doc = await self.metadata.find_one(Collections.USERS, {"email": email.strip().lower()})
        return UserInDB.model_validate(doc) if doc else None

    async def _insert(self, user: UserInDB) -> UserInDB:
        try:
            await self.metadata.insert(Collections.USERS, user.id, user.to_document())
        except DuplicateKeyError:
            raise ConflictError("Email already registered")
        return user

    async def _patch(self, user: UserInDB, **changes) -> User:
        changes["updated_at"] = utc_now()
        await self.metadata.update(Collections.USERS, user.id, changes)
        return user.model_copy(update=changes).public()

    # =========================================================================
    # Sessions
    # =========================================================================

    async def login(self, email: str, password: str) -> Session:
        """
        Check credentials and issue tokens.

        Unknown email and wrong password fail identically.
        """
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid email or password")

        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        user = await self._patch(user, last_login=utc_now())
        logger.info(f"User {user.id} logged in")
        return Session(tokens=_issue(user), user=user)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        invite_token: str | None = None,
    ) -> Session:
        """
        Create an account.

        Without an invite the user is STAFF. With one, the invite must
        be PENDING, unexpired and addressed to `email`; the new user
        takes the invite's role.
        """
        email = email.strip().lower()
        if await self.get_by_email(email):
            raise ConflictError("Email already registered")

        def build(role: Role, invited_at=None) -> UserInDB:
            return UserInDB(
                name=name.strip(),
                email=email,
                role=role,
                status=UserStatus.ACTIVE,
                invited_at=invited_at,
                password_hash=hash_password(password),
            )

        if invite_token:
            async def create_from_invite(invite: Invite) -> User:
                return await self._insert(build(invite.role, invite.created_at))

            _, user = await self.invites.accept(invite_token, email, create_from_invite)
        else:
            user = await self._insert(build(Role.STAFF))

        user = user.public() if isinstance(user, UserInDB) else user
        logger.info(f"User {user.id} registered as {user.role.value}")
        return Session(tokens=_issue(user), user=user)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Issue a new pair carrying the user's current email and role."""
        payload = decode_token(refresh_token, expected_type=REFRESH)

        user = await self._load(payload.sub)
        if user is None:
            raise UnauthorizedError("User not found")
        if not user.is_active:
            raise UnauthorizedError("User account is inactive")

        return _issue(user)

    # =========================================================================
    # Own profile
    # =========================================================================

    async def get_profile(self, caller: Caller) -> User:
        ensure(caller, Action.PROFILE_READ)
        return (await self._require(caller.user_id)).public()

    async def update_profile(self, caller: Caller, name: str | None = None) -> User:
        ensure(caller, Action.PROFILE_UPDATE)
        user = await self._require(caller.user_id)
        if name is None:
            return user.public()
        return await self._patch(user, name=name.strip())

    # =========================================================================
    # Administration
    # =========================================================================

    async def list_users(
        self,
        caller: Caller,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[User], Page]:
        """Newest first, one page at a time."""
        ensure(caller, Action.USER_LIST)

        page = max(1, page)
        limit = limit or self.settings.default_page_size
        limit = min(max(1, limit), self.settings.max_page_size)

        total = await self.metadata.count(Collections.USERS)
        docs = await self.metadata.query(
            Collections.USERS,
            sort_by="created_at",
            descending=True,
            limit=limit,
            offset=(page - 1) * limit,
        )
        users = [UserInDB.model_validate(d).public() for d in docs]
        return users, Page(total=total, page=page, limit=limit)

    async def get_user(self, caller: Caller, user_id: str) -> User:
        ensure(caller, Action.USER_READ, user_id)
        return (await self._require(user_id)).public()

    async def set_status(self, caller: Caller, user_id: str, status: UserStatus) -> User:
        status = UserStatus(status)
        ensure(caller, Action.USER_UPDATE_STATUS, user_id, changes={"status": status})

        user = await self._require(user_id)
        updated = await self._patch(user, status=status)
        logger.info(f"User {user_id} status {user.status.value} -> {status.value} by {caller.user_id}")
        return updated

    async def change_role(self, caller: Caller, user_id: str, role: Role) -> User:
        role = Role(role)
        ensure(caller, Action.USER_UPDATE_ROLE, user_id)

        user = await self._require(user_id)
        updated = await self._patch(user, role=role)
        logger.info(f"User {user_id} role {user.role.value} -> {role.value} by {caller.user_id}")
        return updated
