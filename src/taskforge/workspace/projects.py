"""Project, task and task-group operations outside of generation.

Every lookup is scoped by owner. A project that exists but belongs to
someone else is reported as NotFound, except on delete where the caller
gets Forbidden.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Forbidden, NotFound, PersistenceError, ValidationError
from ..models import (
    DEFAULT_TEMPLATE_TYPE, GenerationStats, ProjectStatus, TaskChanges,
)
from ..store import Project, Task, TaskEdit, TaskGroup


# Fields that may not be cleared by a partial update
REQUIRED_TASK_FIELDS = {"title", "task_type", "priority", "difficulty", "task_status", "display_order"}


@contextmanager
def persistence_errors(message: str) -> Iterator[None]:
    """Re-raise store failures as PersistenceError with a client-safe message."""
    try:
        yield
    except SQLAlchemyError as e:
        raise PersistenceError(message) from e


@dataclass
class GroupWithTasks:
    group: TaskGroup
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.group.to_dict()
        data["tasks"] = [t.to_dict() for t in self.tasks]
        return data


@dataclass
class ProjectDetails:
    """A project with its groups and tasks, both in display order."""

    project: Project
    groups: list[GroupWithTasks]
    ungrouped: list[Task]
    stats: GenerationStats

    def to_dict(self) -> dict:
        return {
            "project": self.project.to_dict(),
            "taskGroups": [g.to_dict() for g in self.groups],
            "ungroupedTasks": [t.to_dict() for t in self.ungrouped],
            "stats": {
                "totalTasks": self.stats.total_tasks,
                "userStories": self.stats.user_stories,
                "engineeringTasks": self.stats.engineering_tasks,
                "risks": self.stats.risks,
            },
        }


async def get_owned_project(session: AsyncSession, user_id: str, project_id: str) -> Project:
    """Fetch a project owned by the user.

    Raises:
        NotFound: If the project does not exist or belongs to someone else.
    """
    with persistence_errors("Failed to fetch project"):
        result = await session.execute(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        project = result.scalar_one_or_none()
    if project is None:
        raise NotFound("Project not found")
    return project


async def list_tasks(session: AsyncSession, project_id: str) -> list[Task]:
    """All tasks of a project ordered by display order."""
    with persistence_errors("Failed to fetch tasks"):
        result = await session.execute(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.display_order, Task.created_at, Task.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


async def list_groups(session: AsyncSession, project_id: str) -> list[TaskGroup]:
    """All task groups of a project ordered by display order."""
    with persistence_errors("Failed to fetch task groups"):
        result = await session.execute(
            select(TaskGroup)
            .where(TaskGroup.project_id == project_id)
            .order_by(TaskGroup.display_order)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


async def list_projects(session: AsyncSession, user_id: str) -> list[dict]:
    """List the user's projects, newest first, with task and group counts."""
    with persistence_errors("Failed to fetch projects"):
        task_counts = (
            select(Task.project_id, func.count(Task.id).label("n"))
            .group_by(Task.project_id)
            .subquery()
        )
        group_counts = (
            select(TaskGroup.project_id, func.count(TaskGroup.id).label("n"))
            .group_by(TaskGroup.project_id)
            .subquery()
        )
        result = await session.execute(
            select(Project, task_counts.c.n, group_counts.c.n)
            .outerjoin(task_counts, task_counts.c.project_id == Project.id)
            .outerjoin(group_counts, group_counts.c.project_id == Project.id)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc())
        )
        rows = result.all()

    return [
        {
            "id": project.id,
            "title": project.title,
            "description": project.description,
            "status": project.status,
            "created_at": project.created_at.isoformat() if project.created_at else None,
            "taskCount": task_count or 0,
            "task_groups": group_count or 0,
        }
        for project, task_count, group_count in rows
    ]


async def create_project(
    session: AsyncSession,
    user_id: str,
    title: Optional[str],
    description: Optional[str],
    target_users: Optional[str] = None,
    constraints: Optional[str] = None,
    template_type: Optional[str] = None,
) -> Project:
    """Create an empty project without generation.

    Raises:
        ValidationError: If title or description is missing.
    """
    if not title or not title.strip() or not description or not description.strip():
        raise ValidationError("Title and description are required")

    project = Project(
        user_id=user_id,
        title=title,
        description=description,
        target_users=target_users or "",
        constraints=constraints or "",
        template_type=template_type or DEFAULT_TEMPLATE_TYPE,
        status=ProjectStatus.DRAFT.value,
    )
    try:
        session.add(project)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to create project") from e
    return project


async def get_project_details(session: AsyncSession, user_id: str, project_id: str) -> ProjectDetails:
    """Load a project with grouped tasks and summary counts."""
    project = await get_owned_project(session, user_id, project_id)
    groups = await list_groups(session, project_id)
    tasks = await list_tasks(session, project_id)

    by_group: dict[str, GroupWithTasks] = {g.id: GroupWithTasks(group=g) for g in groups}
    ungrouped: list[Task] = []
    for task in tasks:
        bucket = by_group.get(task.task_group_id) if task.task_group_id else None
        if bucket is None:
            ungrouped.append(task)
        else:
            bucket.tasks.append(task)

    return ProjectDetails(
        project=project,
        groups=[by_group[g.id] for g in groups],
        ungrouped=ungrouped,
        stats=GenerationStats.from_types([t.task_type for t in tasks]),
    )


async def delete_project(session: AsyncSession, user_id: str, project_id: str) -> Project:
    """Delete a project; groups, tasks and edits go with it.

    Raises:
        NotFound: If the project does not exist.
        Forbidden: If the project belongs to another user.
    """
    with persistence_errors("Failed to fetch project"):
        project = await session.get(Project, project_id)
    if project is None:
        raise NotFound("Project not found")
    if project.user_id != user_id:
        raise Forbidden("Forbidden - you can only delete your own projects")

    try:
        await session.execute(
            delete(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to delete project") from e
    return project


async def _require_group_in_project(session: AsyncSession, project_id: str, group_id: str) -> TaskGroup:
    with persistence_errors("Failed to fetch task group"):
        result = await session.execute(
            select(TaskGroup).where(TaskGroup.id == group_id, TaskGroup.project_id == project_id)
        )
        group = result.scalar_one_or_none()
    if group is None:
        raise NotFound("Task group not found")
    return group


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


async def update_task(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    task_id: str,
    changes: TaskChanges,
) -> Task:
    """Apply a partial update to one task and record each changed field.

    Raises:
        NotFound: Unknown project, task, or target group.
        ValidationError: A required field was cleared.
    """
    await get_owned_project(session, user_id, project_id)

    with persistence_errors("Failed to fetch task"):
        result = await session.execute(
            select(Task).where(Task.id == task_id, Task.project_id == project_id)
        )
        task = result.scalar_one_or_none()
    if task is None:
        raise NotFound("Task not found")

    updates = changes.model_dump(mode="json", exclude_unset=True)
    for name, value in updates.items():
        if name in REQUIRED_TASK_FIELDS and value is None:
            raise ValidationError(f"{name} cannot be empty")
    if updates.get("title") is not None and not updates["title"].strip():
        raise ValidationError("title cannot be empty")
    if updates.get("task_group_id"):
        await _require_group_in_project(session, project_id, updates["task_group_id"])

    try:
        edited_at = datetime.now()
        for name, value in updates.items():
            original = getattr(task, name)
            if original == value:
                continue
            session.add(TaskEdit(
                task_id=task.id,
                field_changed=name,
                original_value=_as_text(original),
                new_value=_as_text(value),
                edited_at=edited_at,
            ))
            setattr(task, name, value)
        await session.commit()
        await session.refresh(task)
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to update task") from e
    return task


async def list_task_edits(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    task_id: str,
) -> list[TaskEdit]:
    """Edit history of a task, newest first."""
    await get_owned_project(session, user_id, project_id)
    with persistence_errors("Failed to fetch task edits"):
        result = await session.execute(
            select(TaskEdit)
            .join(Task, Task.id == TaskEdit.task_id)
            .where(Task.id == task_id, Task.project_id == project_id)
            .order_by(TaskEdit.edited_at.desc(), TaskEdit.id)
        )
        return list(result.scalars().all())


async def delete_task_group(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    group_id: str,
) -> int:
    """Delete one task group. Its tasks stay in the project, ungrouped.

    Returns:
        Number of tasks that lost their group.
    """
    await get_owned_project(session, user_id, project_id)
    await _require_group_in_project(session, project_id, group_id)

    try:
        result = await session.execute(
            select(func.count(Task.id)).where(Task.task_group_id == group_id)
        )
        orphaned = result.scalar_one()
        await session.execute(
            update(Task).where(Task.task_group_id == group_id).values(task_group_id=None)
        )
        await session.execute(
            delete(TaskGroup).where(TaskGroup.id == group_id, TaskGroup.project_id == project_id)
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to delete task group") from e
    return orphaned
