"""
Services - the operations behind the HTTP API.

Each service takes the StorageProvider and performs its own access
checks through `projecthub.auth.policies.ensure`.
"""

from projecthub.services.invites import InviteService
from projecthub.services.maintenance import reconcile
from projecthub.services.projects import ProjectService
from projecthub.services.tasks import TaskService
from projecthub.services.users import Page, Session, UserService

__all__ = [
    "InviteService",
    "Page",
    "ProjectService",
    "Session",
    "TaskService",
    "UserService",
    "reconcile",
]
