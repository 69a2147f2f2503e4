"""
Tasks within a project.

Tasks have no access rules of their own: whoever may read the project
may list and create its tasks.
"""

from __future__ import annotations

import logging
from datetime import datetime

from projecthub.auth.capabilities import Action
from projecthub.auth.context import Caller
from projecthub.auth.policies import ensure
from projecthub.core.errors import NotFoundError
from projecthub.core.models import Task, TaskPriority, TaskStatus
from projecthub.services.projects import ProjectService
from projecthub.storage.base import Collections, StorageProvider

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, storage: StorageProvider, projects: ProjectService | None = None):
        self.storage = storage
        self.metadata = storage.metadata
        self.projects = projects or ProjectService(storage)

    async def create(
        self,
        caller: Caller,
        project_id: str,
        title: str,
        description: str = "",
        assigned_to: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
    ) -> Task:
        project = await self.projects.load_live(project_id)
        ensure(caller, Action.TASK_CREATE, project)

        if assigned_to and not await self.metadata.get(Collections.USERS, assigned_to):
            raise NotFoundError("Assigned user not found")

        task = Task(
            title=title.strip(),
            description=(description or "").strip(),
            project_id=project.id,
            assigned_to=assigned_to,
            created_by=caller.user_id,
            status=status,
            priority=priority,
            due_date=due_date,
        )
        await self.metadata.insert(Collections.TASKS, task.id, task.to_document())
        logger.info(f"Task {task.id} created in project {project.id} by {caller.user_id}")
        return task

    async def list_for_project(self, caller: Caller, project_id: str) -> list[Task]:
        """Live tasks of a live project, newest first."""
        project = await self.projects.load_live(project_id)
        ensure(caller, Action.TASK_LIST, project)

        docs = await self.metadata.query(
            Collections.TASKS,
            {"project_id": project.id, "is_deleted": False},
            sort_by="created_at",
            descending=True,
            limit=None,
        )
        return [Task.model_validate(d) for d in docs]
