"""
Tests for projects: membership, access, soft delete and its cascade.
"""

from datetime import timedelta

import pytest

from conftest import caller_for
from projecthub.core.errors import ForbiddenError, NotFoundError, ValidationError
from projecthub.core.models import MemberRole, ProjectStatus, Task, TaskPriority
from projecthub.storage import Collections


@pytest.fixture
def make_project(project_service):
    async def _make(owner, name="Website Redesign", **kwargs):
        return await project_service.create(caller_for(owner), name, **kwargs)
    return _make


# =============================================================================
# Create & read
# =============================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_creator_is_admin_and_sole_member(self, make_project, staff):
        project = await make_project(staff, description="Refresh the site")

        assert project.admin == project.created_by == staff.id
        assert len(project.team_members) == 1
        assert project.team_members[0].user_id == staff.id
        assert project.team_members[0].role == MemberRole.ADMIN
        assert project.status == ProjectStatus.ACTIVE
        assert project.is_deleted is False

    @pytest.mark.asyncio
    async def test_list_only_involved_projects(
        self, project_service, make_project, storage, staff, manager, outsider,
    ):
        mine = await make_project(staff, "Staff Project")
        await storage.metadata.update(
            Collections.PROJECTS, mine.id, {"created_at": mine.created_at - timedelta(minutes=1)},
        )
        theirs = await make_project(manager, "Manager Project")
        await project_service.add_member(caller_for(manager), theirs.id, staff.id)
        await make_project(outsider, "Unrelated Project")

        listed = await project_service.list_for(caller_for(staff))

        assert [p.id for p in listed] == [theirs.id, mine.id]

    @pytest.mark.asyncio
    async def test_get_access(self, project_service, make_project, staff, admin, outsider):
        project = await make_project(staff)

        assert (await project_service.get(caller_for(admin), project.id)).id == project.id
        with pytest.raises(ForbiddenError, match="You don't have access to this project"):
            await project_service.get(caller_for(outsider), project.id)

    @pytest.mark.asyncio
    async def test_get_missing(self, project_service, staff):
        with pytest.raises(NotFoundError, match="Project not found"):
            await project_service.get(caller_for(staff), "proj_missing")


# =============================================================================
# Update
# =============================================================================


class TestUpdate:
    @pytest.mark.asyncio
    async def test_project_admin_updates(self, project_service, make_project, staff, storage):
        project = await make_project(staff)

        updated = await project_service.update(
            caller_for(staff), project.id, {"name": "Renamed", "status": ProjectStatus.ON_HOLD, "admin": "x"},
        )

        assert updated.name == "Renamed"
        assert updated.status == ProjectStatus.ON_HOLD
        stored = await storage.metadata.get(Collections.PROJECTS, project.id)
        assert stored["name"] == "Renamed"
        # Only name/description/status are writable
        assert stored["admin"] == staff.id

    @pytest.mark.asyncio
    async def test_system_admin_cannot_update(self, project_service, make_project, staff, admin):
        project = await make_project(staff)
        with pytest.raises(ForbiddenError, match="Only project admin can update project"):
            await project_service.update(caller_for(admin), project.id, {"name": "Hijacked"})

    @pytest.mark.asyncio
    async def test_member_cannot_update(self, project_service, make_project, staff, manager):
        project = await make_project(manager)
        await project_service.add_member(caller_for(manager), project.id, staff.id)
        with pytest.raises(ForbiddenError):
            await project_service.update(caller_for(staff), project.id, {"name": "Mine now"})


# =============================================================================
# Membership
# =============================================================================


class TestMembership:
    @pytest.mark.asyncio
    async def test_add_member(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        updated = await project_service.add_member(caller_for(manager), project.id, staff.id, MemberRole.MANAGER)

        assert [(m.user_id, m.role) for m in updated.team_members] == [
            (manager.id, MemberRole.ADMIN),
            (staff.id, MemberRole.MANAGER),
        ]
        # The new member can now read it
        assert await project_service.get(caller_for(staff), project.id)

    @pytest.mark.asyncio
    async def test_add_duplicate(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        await project_service.add_member(caller_for(manager), project.id, staff.id)
        with pytest.raises(ValidationError, match="User is already a team member"):
            await project_service.add_member(caller_for(manager), project.id, staff.id)

    @pytest.mark.asyncio
    async def test_add_unknown_user(self, project_service, make_project, manager):
        project = await make_project(manager)
        with pytest.raises(NotFoundError, match="User not found"):
            await project_service.add_member(caller_for(manager), project.id, "user_missing")

    @pytest.mark.asyncio
    async def test_add_requires_project_admin(self, project_service, make_project, manager, staff, admin):
        project = await make_project(manager)
        with pytest.raises(ForbiddenError, match="Only project admin can add team members"):
            await project_service.add_member(caller_for(admin), project.id, staff.id)

    @pytest.mark.asyncio
    async def test_remove_member(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        await project_service.add_member(caller_for(manager), project.id, staff.id)

        updated = await project_service.remove_member(caller_for(manager), project.id, staff.id)

        assert [m.user_id for m in updated.team_members] == [manager.id]
        with pytest.raises(ForbiddenError):
            await project_service.get(caller_for(staff), project.id)

    @pytest.mark.asyncio
    async def test_remove_non_member_is_noop(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        updated = await project_service.remove_member(caller_for(manager), project.id, staff.id)
        assert updated.team_members == project.team_members

    @pytest.mark.asyncio
    async def test_remove_requires_project_admin(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        with pytest.raises(ForbiddenError, match="Only project admin can remove team members"):
            await project_service.remove_member(caller_for(staff), project.id, manager.id)


# =============================================================================
# Soft delete
# =============================================================================


class TestDelete:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("deleter", ["creator", "system_admin"])
    async def test_allowed_deleters(self, deleter, project_service, make_project, manager, admin):
        project = await make_project(manager)
        who = manager if deleter == "creator" else admin

        await project_service.delete(caller_for(who), project.id)

        with pytest.raises(NotFoundError):
            await project_service.get(caller_for(manager), project.id)
        assert await project_service.list_for(caller_for(manager)) == []

    @pytest.mark.asyncio
    async def test_project_admin_who_is_not_creator(self, project_service, make_project, storage, manager, staff):
        project = await make_project(manager)
        await storage.metadata.update(Collections.PROJECTS, project.id, {"admin": staff.id})

        await project_service.delete(caller_for(staff), project.id)

    @pytest.mark.asyncio
    async def test_member_cannot_delete(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        await project_service.add_member(caller_for(manager), project.id, staff.id)
        with pytest.raises(ForbiddenError, match="Only admin or project creator can delete project"):
            await project_service.delete(caller_for(staff), project.id)

    @pytest.mark.asyncio
    async def test_delete_twice(self, project_service, make_project, manager):
        project = await make_project(manager)
        await project_service.delete(caller_for(manager), project.id)
        with pytest.raises(NotFoundError, match="Project has already been deleted"):
            await project_service.delete(caller_for(manager), project.id)

    @pytest.mark.asyncio
    async def test_deleted_project_rejects_writes(self, project_service, make_project, manager, staff):
        project = await make_project(manager)
        await project_service.delete(caller_for(manager), project.id)

        with pytest.raises(NotFoundError):
            await project_service.update(caller_for(manager), project.id, {"name": "Back"})
        with pytest.raises(NotFoundError):
            await project_service.add_member(caller_for(manager), project.id, staff.id)

    @pytest.mark.asyncio
    async def test_cascades_to_tasks(self, project_service, task_service, make_project, manager, storage):
        project = await make_project(manager)
        other = await make_project(manager, "Other Project")
        for title in ("Design", "Build"):
            await task_service.create(caller_for(manager), project.id, title)
        kept = await task_service.create(caller_for(manager), other.id, "Unrelated")

        cascaded = await project_service.delete(caller_for(manager), project.id)

        assert cascaded == 2
        docs = await storage.metadata.query(Collections.TASKS, {"project_id": project.id})
        assert all(d["is_deleted"] and d["deleted_at"] for d in docs)
        assert (await storage.metadata.get(Collections.TASKS, kept.id))["is_deleted"] is False

    @pytest.mark.asyncio
    async def test_reconcile_finishes_cascade(self, project_service, make_project, manager, storage):
        project = await make_project(manager)
        await project_service.delete(caller_for(manager), project.id)

        # A task left live, as if the cascade had been interrupted
        straggler = Task(title="Straggler", project_id=project.id, created_by=manager.id)
        await storage.metadata.insert(Collections.TASKS, straggler.id, straggler.to_document())

        assert await project_service.reconcile_deleted() == 1
        assert (await storage.metadata.get(Collections.TASKS, straggler.id))["is_deleted"] is True
        assert await project_service.reconcile_deleted() == 0


# =============================================================================
# Tasks
# =============================================================================


class TestTasks:
    @pytest.mark.asyncio
    async def test_member_creates_and_lists(self, project_service, task_service, make_project, manager, staff):
        project = await make_project(manager)
        await project_service.add_member(caller_for(manager), project.id, staff.id)

        task = await task_service.create(
            caller_for(staff), project.id, "Write copy", assigned_to=manager.id, priority=TaskPriority.HIGH,
        )

        assert task.created_by == staff.id
        listed = await task_service.list_for_project(caller_for(manager), project.id)
        assert [t.id for t in listed] == [task.id]

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, task_service, make_project, manager, outsider):
        project = await make_project(manager)
        with pytest.raises(ForbiddenError):
            await task_service.create(caller_for(outsider), project.id, "Sneaky")
        with pytest.raises(ForbiddenError):
            await task_service.list_for_project(caller_for(outsider), project.id)

    @pytest.mark.asyncio
    async def test_unknown_assignee(self, task_service, make_project, manager):
        project = await make_project(manager)
        with pytest.raises(NotFoundError, match="Assigned user not found"):
            await task_service.create(caller_for(manager), project.id, "Orphan", assigned_to="user_missing")

    @pytest.mark.asyncio
    async def test_deleted_project(self, project_service, task_service, make_project, manager):
        project = await make_project(manager)
        await project_service.delete(caller_for(manager), project.id)
        with pytest.raises(NotFoundError, match="Project not found"):
            await task_service.list_for_project(caller_for(manager), project.id)
