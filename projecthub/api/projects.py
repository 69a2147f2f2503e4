# =============================================================================
# Project API Routes
# =============================================================================
#
# Endpoints:
#   POST   /api/projects                                    - Create
#   GET    /api/projects                                    - Caller's projects
#   GET    /api/projects/{project_id}                       - Read
#   PATCH  /api/projects/{project_id}                       - Update (project admin)
#   DELETE /api/projects/{project_id}                       - Soft delete
#   POST   /api/projects/{project_id}/team-members          - Add member (project admin)
#   DELETE /api/projects/{project_id}/team-members/{uid}    - Remove member (project admin)
#   POST   /api/projects/{project_id}/tasks                 - Create task
#   GET    /api/projects/{project_id}/tasks                 - List tasks
#
# =============================================================================

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from projecthub.api.deps import get_project_service, get_task_service
from projecthub.api.responses import envelope
from projecthub.auth.context import Caller
from projecthub.auth.policies import get_caller
from projecthub.core.models import MemberRole, ProjectStatus, TaskPriority, TaskStatus
from projecthub.services.projects import ProjectService
from projecthub.services.tasks import TaskService

router = APIRouter(prefix="/api/projects", tags=["projects"])


# =============================================================================
# Request Models
# =============================================================================

class RequestModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CreateProjectRequest(RequestModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=500)
    status: ProjectStatus = ProjectStatus.ACTIVE


class UpdateProjectRequest(RequestModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    status: ProjectStatus | None = None


class AddMemberRequest(RequestModel):
    user_id: str = Field(min_length=1)
    role: MemberRole = MemberRole.MEMBER


class CreateTaskRequest(RequestModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=2000)
    assigned_to: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None


# =============================================================================
# Projects
# =============================================================================

@router.post("", status_code=201)
async def create_project(
    data: CreateProjectRequest,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    project = await projects.create(caller, data.name, data.description, data.status)
    return envelope(project.to_response(), "Project created successfully")


@router.get("")
async def list_projects(
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    items = await projects.list_for(caller)
    return envelope([p.to_response() for p in items])


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    project = await projects.get(caller, project_id)
    return envelope(project.to_response())


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    data: UpdateProjectRequest,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    project = await projects.update(caller, project_id, data.model_dump(exclude_none=True))
    return envelope(project.to_response(), "Project updated successfully")


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    await projects.delete(caller, project_id)
    return envelope(message="Project deleted successfully")


# =============================================================================
# Team members
# =============================================================================

@router.post("/{project_id}/team-members")
async def add_team_member(
    project_id: str,
    data: AddMemberRequest,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    project = await projects.add_member(caller, project_id, data.user_id, data.role)
    return envelope(project.to_response(), "Team member added successfully")


@router.delete("/{project_id}/team-members/{member_id}")
async def remove_team_member(
    project_id: str,
    member_id: str,
    caller: Caller = Depends(get_caller),
    projects: ProjectService = Depends(get_project_service),
):
    project = await projects.remove_member(caller, project_id, member_id)
    return envelope(project.to_response(), "Team member removed successfully")


# =============================================================================
# Tasks
# =============================================================================

@router.post("/{project_id}/tasks", status_code=201)
async def create_task(
    project_id: str,
    data: CreateTaskRequest,
    caller: Caller = Depends(get_caller),
    tasks: TaskService = Depends(get_task_service),
):
    task = await tasks.create(
        caller,
        project_id,
        title=data.title,
        description=data.description,
        assigned_to=data.assigned_to,
        status=data.status,
        priority=data.priority,
        due_date=data.due_date,
    )
    return envelope(task.to_response(), "Task created successfully")


@router.get("/{project_id}/tasks")
async def list_tasks(
    project_id: str,
    caller: Caller = Depends(get_caller),
    tasks: TaskService = Depends(get_task_service),
):
    items = await tasks.list_for_project(caller, project_id)
    return envelope([t.to_response() for t in items])
