"""Workspace endpoints: generation, projects, tasks, export."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ... import export as exporter
from ...auth import SessionContext
from ...generation import TaskBreakdownGenerator, validate_request
from ...models import ReorderUpdate, TaskChanges
from ... import workspace
from ..deps import (
    get_config, get_db_session, get_model, get_session_context, new_generation_logger,
)

router = APIRouter()


class GenerateRequestBody(BaseModel):
    """Request body for the generate endpoint."""
    featureGoal: Optional[str] = None
    targetUsers: Optional[str] = None
    constraints: Optional[str] = None
    templateType: Optional[str] = None


class CreateProjectBody(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    targetUsers: Optional[str] = None
    constraints: Optional[str] = None
    templateType: Optional[str] = None


class ReorderBody(BaseModel):
    """New order (and group) for a project's tasks."""
    tasks: list[ReorderUpdate]


@router.post("/workspace/generate", status_code=201)
async def generate(
    request: Request,
    body: GenerateRequestBody,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Generate a task breakdown and persist it as a new project."""
    generation_request = validate_request(
        body.featureGoal, body.targetUsers, body.constraints, body.templateType
    )
    config = get_config(request)
    generator = TaskBreakdownGenerator(get_model(request), config.generation_model)

    with new_generation_logger(request, context.user_id) as logger:
        result = await workspace.generate_project(
            session, generator, context.user_id, generation_request, logger
        )
    return result.to_response()


@router.get("/workspace/projects")
async def list_projects(
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """List the caller's projects with task and group counts."""
    projects = await workspace.list_projects(session, context.user_id)
    return {"projects": projects}


@router.post("/workspace/projects", status_code=201)
async def create_project(
    body: CreateProjectBody,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a project without generation."""
    project = await workspace.create_project(
        session,
        context.user_id,
        body.title,
        body.description,
        target_users=body.targetUsers,
        constraints=body.constraints,
        template_type=body.templateType,
    )
    return {"project": project.to_dict()}


@router.get("/workspace/projects/{project_id}/details")
async def project_details(
    project_id: str,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a project with its grouped tasks and stats."""
    details = await workspace.get_project_details(session, context.user_id, project_id)
    return details.to_dict()


@router.delete("/workspace/projects/{project_id}/delete")
async def delete_project(
    project_id: str,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a project and everything in it. Owner only."""
    project = await workspace.delete_project(session, context.user_id, project_id)
    return {
        "success": True,
        "message": f'Project "{project.title}" and all related data has been deleted',
        "projectId": project_id,
    }


@router.get("/workspace/projects/{project_id}/export")
async def export_project(
    project_id: str,
    format: Optional[str] = Query(default=None),
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Download the project as a Markdown or plain-text document."""
    details = await workspace.get_project_details(session, context.user_id, project_id)
    fmt = exporter.parse_format(format)
    content = exporter.render(details, fmt)
    filename = exporter.export_filename(details.project.title, fmt)
    return Response(
        content=content,
        media_type=exporter.MIME_TYPES[fmt],
        headers={"Content-Disposition": exporter.content_disposition(filename)},
    )


@router.put("/workspace/projects/{project_id}/tasks/{task_id}")
async def update_task(
    project_id: str,
    task_id: str,
    changes: TaskChanges,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Partially update one task."""
    task = await workspace.update_task(session, context.user_id, project_id, task_id, changes)
    return {"task": task.to_dict()}


@router.get("/workspace/projects/{project_id}/tasks/{task_id}/edits")
async def task_edits(
    project_id: str,
    task_id: str,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Edit history of one task, newest first."""
    edits = await workspace.list_task_edits(session, context.user_id, project_id, task_id)
    return {"edits": [e.to_dict() for e in edits]}


@router.patch("/workspace/projects/{project_id}/tasks/reorder")
async def reorder(
    project_id: str,
    body: ReorderBody,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Persist a drag-and-drop reorder and return the new task order."""
    result = await workspace.reorder_tasks(session, context.user_id, project_id, body.tasks)
    return {
        "tasks": [t.to_dict() for t in result.tasks],
        "applied": result.applied,
        "skipped": result.skipped,
        "unchanged": result.unchanged,
    }


@router.delete("/workspace/projects/{project_id}/groups/{group_id}")
async def delete_group(
    project_id: str,
    group_id: str,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a task group; its tasks become ungrouped."""
    orphaned = await workspace.delete_task_group(session, context.user_id, project_id, group_id)
    return {"success": True, "ungroupedTasks": orphaned}
