"""Drag-and-drop reordering and regrouping of a project's tasks."""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import PersistenceError
from ..models import ReorderUpdate
from ..store import Task
from .projects import get_owned_project, list_groups, list_tasks


@dataclass
class ReorderResult:
    """Outcome of a reorder request."""

    tasks: list[Task]
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unchanged: bool = False


def moves_group(item: ReorderUpdate) -> bool:
    """True when the update names a group (an explicit null ungroups)."""
    return "task_group_id" in item.model_fields_set


def is_noop(current: list[Task], updates: list[ReorderUpdate]) -> bool:
    """True when every update matches what is already stored.

    An update that leaves out the group only compares the display order.
    """
    stored = {t.id: t for t in current}
    for u in updates:
        task = stored.get(u.id)
        if task is None or task.display_order != u.display_order:
            return False
        if moves_group(u) and task.task_group_id != u.task_group_id:
            return False
    return True


async def reorder_tasks(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    updates: list[ReorderUpdate],
) -> ReorderResult:
    """Apply new display orders (and groups) to a project's tasks.

    Each update is applied on its own, scoped to (project, task). An update
    naming a task or group outside the project is skipped without affecting
    the rest of the batch, and nothing already applied is rolled back. The
    returned task list is re-read from the store.

    Raises:
        NotFound: If the project does not exist or is not the user's.
    """
    await get_owned_project(session, user_id, project_id)

    current = await list_tasks(session, project_id)
    if is_noop(current, updates):
        return ReorderResult(tasks=current, unchanged=True)

    group_ids = {g.id for g in await list_groups(session, project_id)}
    result = ReorderResult(tasks=[])

    for item in updates:
        if moves_group(item) and item.task_group_id and item.task_group_id not in group_ids:
            result.skipped.append(item.id)
            continue
        values = {"display_order": item.display_order, "updated_at": datetime.now()}
        if moves_group(item):
            values["task_group_id"] = item.task_group_id
        try:
            async with session.begin_nested():
                outcome = await session.execute(
                    update(Task)
                    .where(Task.id == item.id, Task.project_id == project_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError:
            result.skipped.append(item.id)
            continue
        if outcome.rowcount:
            result.applied.append(item.id)
        else:
            result.skipped.append(item.id)

    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to reorder tasks") from e

    result.tasks = await list_tasks(session, project_id)
    return result
