"""
Shared fixtures: a fresh in-memory store per test, the services over it,
and a handful of users with different system roles.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from projecthub.auth.context import Caller
from projecthub.auth.security import hash_password
from projecthub.config import get_settings
from projecthub.core.models import Role, UserInDB
from projecthub.integrations.email import EmailService
from projecthub.services import InviteService, ProjectService, TaskService, UserService
from projecthub.storage import Collections, create_memory_storage, ensure_indexes


PASSWORD = "Passw0rd!"

# Hashing is slow by design; hash once for all fixture users
_PASSWORD_HASH = hash_password(PASSWORD)


async def make_user(storage, name: str, email: str, role: Role = Role.STAFF, **fields) -> UserInDB:
    """Insert a user directly into storage."""
    user = UserInDB(name=name, email=email, role=role, password_hash=_PASSWORD_HASH, **fields)
    await storage.metadata.insert(Collections.USERS, user.id, user.to_document())
    return user


def caller_for(user: UserInDB) -> Caller:
    return Caller(user_id=user.id, email=user.email, role=user.role)


# =============================================================================
# Storage & services
# =============================================================================


@pytest_asyncio.fixture
async def storage():
    """Fresh in-memory storage with the unique indexes declared."""
    storage = create_memory_storage()
    await ensure_indexes(storage)
    return storage


@pytest.fixture
def email_service():
    return EmailService()


@pytest.fixture
def invite_service(storage, email_service):
    return InviteService(storage, email=email_service)


@pytest.fixture
def user_service(storage, invite_service):
    return UserService(storage, invites=invite_service)


@pytest.fixture
def project_service(storage):
    return ProjectService(storage)


@pytest.fixture
def task_service(storage, project_service):
    return TaskService(storage, projects=project_service)


# =============================================================================
# Users
# =============================================================================


@pytest_asyncio.fixture
async def admin(storage):
    return await make_user(storage, "Admin User", "admin@example.com", Role.ADMIN)


@pytest_asyncio.fixture
async def manager(storage):
    return await make_user(storage, "Manager User", "manager@example.com", Role.MANAGER)


@pytest_asyncio.fixture
async def staff(storage):
    return await make_user(storage, "Staff User", "staff@example.com", Role.STAFF)


@pytest_asyncio.fixture
async def outsider(storage):
    return await make_user(storage, "Outside User", "outsider@example.com", Role.STAFF)


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def client(monkeypatch):
    """
    TestClient over the real app, with the demo data loaded.

    Entering the client runs the lifespan, so every test gets its own store.
    """
    from projecthub.api.app import app

    monkeypatch.setattr(get_settings(), "seed_on_startup", True)
    with TestClient(app) as client:
        yield client


def login(client: TestClient, email: str, password: str) -> dict:
    """Log in and return auth headers."""
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.json()
    token = response.json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}
