"""
App state and the dependencies route handlers pull from it.
"""

from __future__ import annotations

from projecthub.services import InviteService, ProjectService, TaskService, UserService
from projecthub.storage import StorageProvider


class AppState:
    """Application state - initialized at startup."""

    storage: StorageProvider
    invite_service: InviteService
    user_service: UserService
    project_service: ProjectService
    task_service: TaskService


state = AppState()


def init_services(storage: StorageProvider) -> None:
    """Build the service graph over `storage`."""
    state.storage = storage
    state.invite_service = InviteService(storage)
    state.user_service = UserService(storage, invites=state.invite_service)
    state.project_service = ProjectService(storage)
    state.task_service = TaskService(storage, projects=state.project_service)


def get_storage() -> StorageProvider:
    return state.storage


def get_invite_service() -> InviteService:
    return state.invite_service


def get_user_service() -> UserService:
    return state.user_service


def get_project_service() -> ProjectService:
    return state.project_service


def get_task_service() -> TaskService:
    return state.task_service
