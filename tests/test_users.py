"""
Tests for user accounts: sessions, registration, profile, administration.
"""

import pytest

from conftest import PASSWORD, caller_for, make_user
from projecthub.auth.context import Caller
from projecthub.auth.security import REFRESH, TokenInvalidError, create_refresh_token, decode_token
from projecthub.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from projecthub.core.models import Role, UserStatus
from projecthub.storage import Collections


class TestLogin:
    @pytest.mark.asyncio
    async def test_success(self, user_service, staff, storage):
        session = await user_service.login("Staff@Example.com", PASSWORD)

        assert session.user.id == staff.id
        assert session.user.last_login is not None
        payload = decode_token(session.tokens.access_token)
        assert payload.sub == staff.id
        assert payload.role == Role.STAFF

        stored = await storage.metadata.get(Collections.USERS, staff.id)
        assert stored["last_login"] is not None

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, user_service, staff):
        with pytest.raises(UnauthorizedError) as wrong_password:
            await user_service.login(staff.email, "Wr0ng!pass")
        with pytest.raises(UnauthorizedError) as unknown_email:
            await user_service.login("nobody@example.com", PASSWORD)

        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_inactive(self, user_service, storage):
        await make_user(storage, "Gone", "gone@example.com", status=UserStatus.INACTIVE)
        with pytest.raises(UnauthorizedError, match="User account is inactive"):
            await user_service.login("gone@example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_session_response_hides_password(self, user_service, staff):
        body = (await user_service.login(staff.email, PASSWORD)).to_response()
        assert set(body) == {"accessToken", "refreshToken", "user"}
        assert "passwordHash" not in body["user"]


class TestRegister:
    @pytest.mark.asyncio
    async def test_self_registration_is_staff(self, user_service):
        session = await user_service.register("Jane Doe", "Jane@Example.com", PASSWORD)

        assert session.user.role == Role.STAFF
        assert session.user.status == UserStatus.ACTIVE
        assert session.user.email == "jane@example.com"

        again = await user_service.login("jane@example.com", PASSWORD)
        assert again.user.id == session.user.id

    @pytest.mark.asyncio
    async def test_email_taken(self, user_service, staff):
        with pytest.raises(ConflictError, match="Email already registered"):
            await user_service.register("Someone", "STAFF@example.com", PASSWORD)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_reissues_with_current_role(self, user_service, staff, storage):
        session = await user_service.login(staff.email, PASSWORD)
        await storage.metadata.update(Collections.USERS, staff.id, {"role": Role.MANAGER})

        tokens = await user_service.refresh(session.tokens.refresh_token)

        assert decode_token(tokens.access_token).role == Role.MANAGER
        assert decode_token(tokens.refresh_token, expected_type=REFRESH).sub == staff.id

    @pytest.mark.asyncio
    async def test_access_token_is_not_a_refresh_token(self, user_service, staff):
        session = await user_service.login(staff.email, PASSWORD)
        with pytest.raises(TokenInvalidError):
            await user_service.refresh(session.tokens.access_token)

    @pytest.mark.asyncio
    async def test_inactive_user(self, user_service, storage):
        user = await make_user(storage, "Gone", "gone@example.com", status=UserStatus.INACTIVE)
        with pytest.raises(UnauthorizedError):
            await user_service.refresh(create_refresh_token(user.id, user.email, user.role))


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_and_update(self, user_service, staff):
        caller = caller_for(staff)
        assert (await user_service.get_profile(caller)).id == staff.id

        updated = await user_service.update_profile(caller, name="  Renamed  ")
        assert updated.name == "Renamed"
        assert (await user_service.get_profile(caller)).name == "Renamed"

    @pytest.mark.asyncio
    async def test_anonymous(self, user_service):
        with pytest.raises(UnauthorizedError, match="Authentication required"):
            await user_service.get_profile(Caller.anonymous())

    @pytest.mark.asyncio
    async def test_deleted_account(self, user_service):
        ghost = Caller(user_id="user_ghost", email="ghost@example.com", role=Role.STAFF)
        with pytest.raises(NotFoundError, match="User not found"):
            await user_service.get_profile(ghost)


class TestListUsers:
    @pytest.mark.asyncio
    async def test_pagination(self, user_service, storage, admin):
        for i in range(4):
            await make_user(storage, f"User {i}", f"user{i}@example.com")

        users, page = await user_service.list_users(caller_for(admin), page=2, limit=2)

        assert len(users) == 2
        assert page.to_response() == {
            "total": 5,
            "page": 2,
            "limit": 2,
            "totalPages": 3,
            "hasNextPage": True,
            "hasPrevPage": True,
        }

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, user_service, admin):
        _, page = await user_service.list_users(caller_for(admin), page=0, limit=1000)
        assert page.page == 1
        assert page.limit == 100

    @pytest.mark.asyncio
    async def test_admin_only(self, user_service, manager):
        with pytest.raises(ForbiddenError, match="Only admins can view all users"):
            await user_service.list_users(caller_for(manager))


class TestAdministration:
    @pytest.mark.asyncio
    async def test_get_user_self_or_admin(self, user_service, admin, staff, manager):
        assert (await user_service.get_user(caller_for(staff), staff.id)).id == staff.id
        assert (await user_service.get_user(caller_for(admin), staff.id)).id == staff.id
        with pytest.raises(ForbiddenError):
            await user_service.get_user(caller_for(manager), staff.id)

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, user_service, admin):
        with pytest.raises(NotFoundError, match="User not found"):
            await user_service.get_user(caller_for(admin), "user_missing")

    @pytest.mark.asyncio
    async def test_deactivate_then_login_fails(self, user_service, admin, staff):
        updated = await user_service.set_status(caller_for(admin), staff.id, UserStatus.INACTIVE)
        assert updated.status == UserStatus.INACTIVE

        with pytest.raises(UnauthorizedError, match="User account is inactive"):
            await user_service.login(staff.email, PASSWORD)

    @pytest.mark.asyncio
    async def test_admin_cannot_deactivate_self(self, user_service, admin, storage):
        with pytest.raises(ValidationError, match="Cannot deactivate your own account"):
            await user_service.set_status(caller_for(admin), admin.id, UserStatus.INACTIVE)

        stored = await storage.metadata.get(Collections.USERS, admin.id)
        assert stored["status"] == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_change_role(self, user_service, admin, staff):
        updated = await user_service.change_role(caller_for(admin), staff.id, Role.MANAGER)
        assert updated.role == Role.MANAGER

    @pytest.mark.asyncio
    async def test_change_role_requires_admin(self, user_service, manager, staff):
        with pytest.raises(ForbiddenError, match="Only admins can change user roles"):
            await user_service.change_role(caller_for(manager), staff.id, Role.ADMIN)
