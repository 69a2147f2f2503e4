"""
Projects, their rosters, and soft delete.

A project with `is_deleted` set is gone as far as callers are concerned:
reads and writes answer 404. Deleting is two-phase - mark the project,
then mark its tasks - and `reconcile_deleted()` re-runs the second phase
for any project whose cascade was cut short.
"""

from __future__ import annotations

import logging
from typing import Any

from projecthub.auth.capabilities import Action
from projecthub.auth.context import Caller
from projecthub.auth.policies import ensure
from projecthub.core.errors import ConflictError, NotFoundError, ValidationError
from projecthub.core.models import MemberRole, Project, ProjectStatus, TeamMember
from projecthub.core.utils import utc_now
from projecthub.storage.base import Collections, StorageProvider

logger = logging.getLogger(__name__)

# Fields a project admin may change
UPDATABLE_FIELDS = ("name", "description", "status")

# Attempts at a roster write before giving up on concurrent edits
ROSTER_WRITE_ATTEMPTS = 3


class ProjectService:
    """Project CRUD and membership."""

    def __init__(self, storage: StorageProvider):
        self.storage = storage
        self.metadata = storage.metadata

    # =========================================================================
    # Loading
    # =========================================================================

    async def _load(self, project_id: str) -> Project | None:
        doc = await self.metadata.get(Collections.PROJECTS, project_id)
        return Project.model_validate(doc) if doc else None

    async def load_live(self, project_id: str, deleted_message: str = "Project not found") -> Project:
        """Fetch a project that exists and is not soft-deleted."""
        project = await self._load(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.is_deleted:
            raise NotFoundError(deleted_message)
        return project

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(
        self,
        caller: Caller,
        name: str,
        description: str = "",
        status: ProjectStatus = ProjectStatus.ACTIVE,
    ) -> Project:
        ensure(caller, Action.PROJECT_CREATE)

        project = Project.new(
            caller.user_id,
            name=name.strip(),
            description=(description or "").strip(),
            status=status,
        )
        await self.metadata.insert(Collections.PROJECTS, project.id, project.to_document())
        logger.info(f"Project {project.id} created by {caller.user_id}")
        return project

    async def list_for(self, caller: Caller) -> list[Project]:
        """Live projects the caller created, administers, or belongs to."""
        ensure(caller, Action.PROJECT_LIST)

        docs = await self.metadata.query(
            Collections.PROJECTS,
            filters={"is_deleted": False},
            any_of=[
                {"created_by": caller.user_id},
                {"admin": caller.user_id},
                {"team_members.user_id": caller.user_id},
            ],
            sort_by="created_at",
            descending=True,
            limit=None,
        )
        return [Project.model_validate(d) for d in docs]

    async def get(self, caller: Caller, project_id: str) -> Project:
        project = await self.load_live(project_id)
        ensure(caller, Action.PROJECT_READ, project)
        return project

    async def update(self, caller: Caller, project_id: str, changes: dict[str, Any]) -> Project:
        """Apply name/description/status changes. Project admin only."""
        project = await self.load_live(project_id, "Project has been deleted")
        ensure(caller, Action.PROJECT_UPDATE, project)

        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if not changes:
            return project

        # Re-validate so field constraints hold on update as on create
        updated = Project.model_validate({**project.to_document(), **changes, "updated_at": utc_now()})
        fields = {k: getattr(updated, k) for k in changes}
        fields["updated_at"] = updated.updated_at

        written = await self.metadata.update(
            Collections.PROJECTS, project_id, fields, where={"is_deleted": False},
        )
        if not written:
            raise NotFoundError("Project has been deleted")

        logger.info(f"Project {project_id} updated by {caller.user_id}: {sorted(changes)}")
        return updated

    async def delete(self, caller: Caller, project_id: str) -> int:
        """
        Soft-delete a project and its tasks.

        Returns the number of tasks marked deleted.
        """
        project = await self._load(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.is_deleted:
            raise NotFoundError("Project has already been deleted")

        ensure(caller, Action.PROJECT_DELETE, project)

        now = utc_now()
        marked = await self.metadata.update(
            Collections.PROJECTS,
            project_id,
            {"is_deleted": True, "deleted_at": now, "updated_at": now},
            where={"is_deleted": False},
        )
        if not marked:
            raise NotFoundError("Project has already been deleted")

        logger.info(f"Project {project_id} deleted by {caller.user_id}")
        return await self._cascade(project_id, now)

    async def _cascade(self, project_id: str, deleted_at) -> int:
        count = await self.metadata.update_many(
            Collections.TASKS,
            {"project_id": project_id, "is_deleted": False},
            {"is_deleted": True, "deleted_at": deleted_at, "updated_at": utc_now()},
        )
        logger.info(f"Cascaded delete of project {project_id} to {count} task(s)")
        return count

    async def reconcile_deleted(self) -> int:
        """
        Finish cascades for every deleted project.

        Safe to run repeatedly; returns the number of tasks it marked.
        """
        total = 0
        docs = await self.metadata.query(Collections.PROJECTS, {"is_deleted": True}, limit=None)
        for doc in docs:
            project = Project.model_validate(doc)
            live_tasks = await self.metadata.count(
                Collections.TASKS, {"project_id": project.id, "is_deleted": False},
            )
            if live_tasks:
                logger.warning(f"Project {project.id} was deleted with {live_tasks} live task(s)")
                total += await self._cascade(project.id, project.deleted_at or utc_now())
        return total

    # =========================================================================
    # Roster
    # =========================================================================

    async def _write_roster(self, project: Project, members: list[TeamMember]) -> Project | None:
        """Store a new roster if nobody changed the project since it was read."""
        now = utc_now()
        written = await self.metadata.update(
            Collections.PROJECTS,
            project.id,
            {"team_members": [m.to_document() for m in members], "updated_at": now},
            where={"is_deleted": False, "updated_at": project.updated_at},
        )
        if not written:
            return None
        return project.model_copy(update={"team_members": members, "updated_at": now})

    async def add_member(
        self,
        caller: Caller,
        project_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> Project:
        role = MemberRole(role)

        for _ in range(ROSTER_WRITE_ATTEMPTS):
            project = await self.load_live(project_id, "Project has been deleted")
            ensure(caller, Action.PROJECT_ADD_MEMBER, project)

            if project.has_member(user_id):
                raise ValidationError("User is already a team member")

            if not await self.metadata.get(Collections.USERS, user_id):
                raise NotFoundError("User not found")

            members = [*project.team_members, TeamMember(user_id=user_id, role=role)]
            updated = await self._write_roster(project, members)
            if updated is not None:
                logger.info(f"User {user_id} added to project {project_id} as {role.value}")
                return updated

        raise ConflictError("Project was modified concurrently, please retry")

    async def remove_member(self, caller: Caller, project_id: str, user_id: str) -> Project:
        """Remove a member. Removing someone who isn't listed is a no-op."""
        for _ in range(ROSTER_WRITE_ATTEMPTS):
            project = await self.load_live(project_id, "Project has been deleted")
            ensure(caller, Action.PROJECT_REMOVE_MEMBER, project)

            if not project.has_member(user_id):
                return project

            members = [m for m in project.team_members if m.user_id != user_id]
            updated = await self._write_roster(project, members)
            if updated is not None:
                logger.info(f"User {user_id} removed from project {project_id}")
                return updated

        raise ConflictError("Project was modified concurrently, please retry")
