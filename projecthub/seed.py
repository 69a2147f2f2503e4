"""
Demo data: three users (one per system role), two projects, two invites.

Passwords:
    admin@example.com   / AdminPass123!
    manager@example.com / ManagerPass123!
    staff@example.com   / StaffPass123!
"""

from __future__ import annotations

import logging
from datetime import timedelta

from projecthub.auth.security import hash_password
from projecthub.config import get_settings
from projecthub.core.models import (
    Invite,
    MemberRole,
    Project,
    ProjectStatus,
    Role,
    TeamMember,
    UserInDB,
)
from projecthub.core.utils import generate_token, utc_now
from projecthub.storage.base import Collections, StorageProvider

logger = logging.getLogger(__name__)


DEMO_USERS = [
    ("Admin User", "admin@example.com", "AdminPass123!", Role.ADMIN),
    ("Manager User", "manager@example.com", "ManagerPass123!", Role.MANAGER),
    ("Staff User", "staff@example.com", "StaffPass123!", Role.STAFF),
]

DEMO_INVITES = [
    ("newuser@example.com", Role.MANAGER),
    ("anotheruser@example.com", Role.STAFF),
]


async def seed(storage: StorageProvider) -> dict[str, list]:
    """
    Insert the demo data into `storage`.

    Expects empty collections; unique indexes reject a second run.
    """
    metadata = storage.metadata
    settings = get_settings()

    users: dict[Role, UserInDB] = {}
    for name, email, password, role in DEMO_USERS:
        user = UserInDB(name=name, email=email, role=role, password_hash=hash_password(password))
        await metadata.insert(Collections.USERS, user.id, user.to_document())
        users[role] = user
    admin, manager, staff = users[Role.ADMIN], users[Role.MANAGER], users[Role.STAFF]

    projects = [
        Project(
            name="Website Redesign",
            description="Redesign company website",
            status=ProjectStatus.ACTIVE,
            created_by=admin.id,
            admin=admin.id,
            team_members=[
                TeamMember(user_id=admin.id, role=MemberRole.ADMIN),
                TeamMember(user_id=manager.id, role=MemberRole.MANAGER),
                TeamMember(user_id=staff.id, role=MemberRole.MEMBER),
            ],
        ),
        Project(
            name="Mobile App Development",
            description="Develop mobile application",
            status=ProjectStatus.ACTIVE,
            created_by=manager.id,
            admin=manager.id,
            team_members=[
                TeamMember(user_id=manager.id, role=MemberRole.ADMIN),
                TeamMember(user_id=staff.id, role=MemberRole.MEMBER),
            ],
        ),
    ]
    for project in projects:
        await metadata.insert(Collections.PROJECTS, project.id, project.to_document())

    invites = []
    for email, role in DEMO_INVITES:
        invite = Invite(
            email=email,
            invited_by=admin.id,
            role=role,
            invite_token=generate_token(),
            expires_at=utc_now() + timedelta(days=settings.invite_expire_days),
        )
        await metadata.insert(Collections.INVITES, invite.id, invite.to_document())
        invites.append(invite)

    logger.info(f"Seeded {len(users)} users, {len(projects)} projects, {len(invites)} invites")
    return {"users": list(users.values()), "projects": projects, "invites": invites}
