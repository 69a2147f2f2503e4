"""
Core data models for the projecthub API.

These models represent the stored entities: Users, Projects, Tasks and
Invites. Stored documents use the snake_case field names; the HTTP layer
renders the camelCase aliases.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from projecthub.core.utils import ensure_aware, generate_id, utc_now


class Document(BaseModel):
    """Base for stored entities."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_document(self) -> dict:
        """Dump for storage (snake_case keys, python values)."""
        return self.model_dump()

    def to_response(self, **kwargs) -> dict:
        """Dump for the HTTP envelope (camelCase keys, JSON values)."""
        return self.model_dump(by_alias=True, mode="json", **kwargs)


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """System-wide role of a user."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"


class MemberRole(str, Enum):
    """Role a user has within one project (distinct from the system role)."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class InviteStatus(str, Enum):
    """
    Invite lifecycle.

    PENDING is the only state with outgoing transitions; the other
    four are terminal.
    """

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


# =============================================================================
# User
# =============================================================================


class User(Document):
    """User data safe to return to clients (no password digest)."""

    id: str = Field(default_factory=lambda: generate_id("user"))
    name: str
    email: str
    role: Role = Role.STAFF
    status: UserStatus = UserStatus.ACTIVE

    last_login: datetime | None = None
    invited_at: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role.value}


class UserInDB(User):
    """User as stored, including the password digest."""

    password_hash: str

    def public(self) -> User:
        return User.model_validate(self.model_dump(exclude={"password_hash"}))


# =============================================================================
# Project
# =============================================================================


class TeamMember(Document):
    user_id: str
    role: MemberRole = MemberRole.MEMBER


class Project(Document):
    """
    A project - the unit of ownership and membership.

    `created_by` never changes. `admin` is the sole authority for
    updates and roster changes.
    """

    id: str = Field(default_factory=lambda: generate_id("proj"))

    name: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=500)
    status: ProjectStatus = ProjectStatus.ACTIVE

    created_by: str
    admin: str | None = None
    team_members: list[TeamMember] = Field(default_factory=list)

    # Soft delete pair
    is_deleted: bool = False
    deleted_at: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def new(cls, creator_id: str, **fields) -> Project:
        """Create a project owned and administered by its creator."""
        return cls(
            created_by=creator_id,
            admin=creator_id,
            team_members=[TeamMember(user_id=creator_id, role=MemberRole.ADMIN)],
            **fields,
        )

    def is_admin(self, user_id: str | None) -> bool:
        return user_id is not None and self.admin == user_id

    def is_creator(self, user_id: str | None) -> bool:
        return user_id is not None and self.created_by == user_id

    def has_member(self, user_id: str | None) -> bool:
        return any(m.user_id == user_id for m in self.team_members)

    def involves(self, user_id: str | None) -> bool:
        """Creator, admin, or listed team member."""
        return self.is_creator(user_id) or self.is_admin(user_id) or self.has_member(user_id)


# =============================================================================
# Task
# =============================================================================


class Task(Document):
    id: str = Field(default_factory=lambda: generate_id("task"))

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=2000)
    project_id: str
    assigned_to: str | None = None
    created_by: str

    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None

    is_deleted: bool = False
    deleted_at: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Invite
# =============================================================================


class Invite(Document):
    """
    An invitation to register with a pre-assigned system role.

    `invite_token` is the acceptance credential; it is never rendered
    in API responses.
    """

    id: str = Field(default_factory=lambda: generate_id("inv"))

    email: str
    invited_by: str
    role: Role = Role.STAFF
    status: InviteStatus = InviteStatus.PENDING

    invite_token: str
    expires_at: datetime

    accepted_at: datetime | None = None
    accepted_by: str | None = None
    project_id: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_pending(self) -> bool:
        return self.status == InviteStatus.PENDING

    def is_past_expiry(self, now: datetime | None = None) -> bool:
        return ensure_aware(self.expires_at) < (now or utc_now())

    def to_response(self, **kwargs) -> dict:
        exclude = set(kwargs.pop("exclude", set()) or set()) | {"invite_token"}
        return super().to_response(exclude=exclude, **kwargs)
