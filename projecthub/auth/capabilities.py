"""
Actions and system-role grants.

This defines WHAT can be attempted and which system roles may attempt
the role-gated actions. Ownership rules live in policies.py.
"""

from enum import Enum

from projecthub.core.models import Role


class Action(str, Enum):
    """Everything a caller can attempt against the API."""

    # Own account
    PROFILE_READ = "profile.read"
    PROFILE_UPDATE = "profile.update"

    # User administration
    USER_LIST = "user.list"
    USER_READ = "user.read"
    USER_UPDATE_ROLE = "user.update_role"
    USER_UPDATE_STATUS = "user.update_status"

    # Invitations
    INVITE_CREATE = "invite.create"
    INVITE_LIST = "invite.list"
    INVITE_REVOKE = "invite.revoke"

    # Operations
    MAINTENANCE_RECONCILE = "maintenance.reconcile"

    # Projects
    PROJECT_CREATE = "project.create"
    PROJECT_LIST = "project.list"
    PROJECT_READ = "project.read"
    PROJECT_UPDATE = "project.update"
    PROJECT_DELETE = "project.delete"
    PROJECT_ADD_MEMBER = "project.add_member"
    PROJECT_REMOVE_MEMBER = "project.remove_member"

    # Tasks (scoped to a project)
    TASK_CREATE = "task.create"
    TASK_LIST = "task.list"


# Actions gated purely on system role
SYSTEM_ROLE_ACTIONS: dict[Role, set[Action]] = {
    Role.ADMIN: {
        Action.USER_LIST,
        Action.USER_UPDATE_ROLE,
        Action.USER_UPDATE_STATUS,
        Action.INVITE_CREATE,
        Action.INVITE_LIST,
        Action.INVITE_REVOKE,
        Action.MAINTENANCE_RECONCILE,
    },
    Role.MANAGER: set(),
    Role.STAFF: set(),
}

ROLE_GATED_ACTIONS: set[Action] = set().union(*SYSTEM_ROLE_ACTIONS.values())


# Open to any authenticated caller
AUTHENTICATED_ACTIONS: set[Action] = {
    Action.PROFILE_READ,
    Action.PROFILE_UPDATE,
    Action.PROJECT_CREATE,
    Action.PROJECT_LIST,
}


def role_allows(role: Role | None, action: Action) -> bool:
    """Does this system role grant a role-gated action?"""
    if role is None:
        return False
    return action in SYSTEM_ROLE_ACTIONS.get(role, set())

