"""
Core module - data models, errors and shared helpers.

This module contains:
- models: Stored entities (User, Project, Task, Invite) and their enums
- errors: ApiError and its HTTP-status subclasses
- utils: Shared utility functions
"""

from projecthub.core.models import (
    Document,
    Role,
    UserStatus,
    ProjectStatus,
    MemberRole,
    TaskStatus,
    TaskPriority,
    InviteStatus,
    User,
    UserInDB,
    TeamMember,
    Project,
    Task,
    Invite,
)

from projecthub.core.errors import (
    ApiError,
    ValidationError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    InternalServerError,
)

from projecthub.core.utils import (
    ensure_aware,
    generate_id,
    generate_token,
    utc_now,
)

__all__ = [
    # Models
    "Document",
    "Role",
    "UserStatus",
    "ProjectStatus",
    "MemberRole",
    "TaskStatus",
    "TaskPriority",
    "InviteStatus",
    "User",
    "UserInDB",
    "TeamMember",
    "Project",
    "Task",
    "Invite",
    # Errors
    "ApiError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalServerError",
    # Utils
    "ensure_aware",
    "generate_id",
    "generate_token",
    "utc_now",
]
