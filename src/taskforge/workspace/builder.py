"""Turn a generated breakdown into a persisted project.

The project, its task groups and its tasks are written in one transaction:
- one group per task type present, in canonical type order
- tasks keep the model's order as their display order across all groups
- a group that fails to insert is rolled back to its savepoint and that
  type's tasks are stored ungrouped
- if the task batch fails, everything is rolled back
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import PersistenceError, TaskforgeError
from ..generation import TaskBreakdownGenerator
from ..generation_logger import GenerationLogger
from ..models import (
    CANONICAL_TYPE_ORDER, MAX_TITLE_LENGTH, TYPE_GROUP_NAMES,
    GeneratedTask, GenerationRequest, GenerationStats, ProjectStatus,
    TaskStatus, TaskType,
)
from ..store import Project, Task, TaskGroup

log = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Everything written for one generated project."""

    project: Project
    groups: list[TaskGroup]
    tasks: list[Task]
    stats: GenerationStats
    ungrouped_types: list[str] = field(default_factory=list)
    quarantined_count: int = 0

    def to_response(self) -> dict:
        return {
            "project": self.project.to_dict(),
            "tasksCount": self.stats.total_tasks,
            "userStoriesCount": self.stats.user_stories,
            "engineeringTasksCount": self.stats.engineering_tasks,
            "risksCount": self.stats.risks,
            "skippedCount": self.quarantined_count,
        }


def project_title(feature_goal: str) -> str:
    """Derive a project title from the feature goal."""
    return feature_goal[:MAX_TITLE_LENGTH].strip()


def present_types(tasks: list[GeneratedTask]) -> list[TaskType]:
    """Task types that occur in the breakdown, in canonical order."""
    found = {t.type for t in tasks}
    return [t for t in CANONICAL_TYPE_ORDER if t in found]


class ProjectBuilder:
    """Writes a project, its groups and its tasks."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def build(
        self,
        user_id: str,
        request: GenerationRequest,
        tasks: list[GeneratedTask],
    ) -> BuildResult:
        """Persist a generated breakdown.

        Args:
            user_id: Owner of the new project.
            request: The original form inputs.
            tasks: Validated tasks in model order.

        Returns:
            BuildResult with the created records and summary counts.

        Raises:
            PersistenceError: If the project or the task batch cannot be written.
        """
        project = await self._create_project(user_id, request)

        groups: list[TaskGroup] = []
        groups_by_type: dict[TaskType, str] = {}
        ungrouped_types: list[str] = []

        group_order = 0
        for task_type in present_types(tasks):
            order = group_order
            group_order += 1
            try:
                async with self.session.begin_nested():
                    group = await self._create_group(project, task_type, order)
            except SQLAlchemyError:
                log.warning("Could not create %s group for project %s; tasks stay ungrouped",
                            task_type.value, project.id)
                ungrouped_types.append(task_type.value)
                continue
            groups.append(group)
            groups_by_type[task_type] = group.id

        records = [
            Task(
                project_id=project.id,
                task_group_id=groups_by_type.get(task.type),
                title=task.title,
                description=task.description,
                task_type=task.type.value,
                priority=task.priority.value,
                difficulty=task.difficulty.value,
                estimated_hours=task.estimated_hours,
                task_status=TaskStatus.TODO.value,
                display_order=index,
            )
            for index, task in enumerate(tasks)
        ]

        try:
            self.session.add_all(records)
            await self.session.flush()
            project.status = ProjectStatus.GENERATED.value
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("Failed to create tasks") from e

        return BuildResult(
            project=project,
            groups=groups,
            tasks=records,
            stats=GenerationStats.from_types([t.type.value for t in tasks]),
            ungrouped_types=ungrouped_types,
        )

    async def _create_project(self, user_id: str, request: GenerationRequest) -> Project:
        project = Project(
            user_id=user_id,
            title=project_title(request.feature_goal),
            description=request.feature_goal,
            target_users=request.target_users,
            constraints=request.constraints,
            template_type=request.template_type,
            status=ProjectStatus.DRAFT.value,
        )
        try:
            self.session.add(project)
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("Failed to create project") from e
        return project

    async def _create_group(self, project: Project, task_type: TaskType, order: int) -> TaskGroup:
        group = TaskGroup(
            project_id=project.id,
            name=TYPE_GROUP_NAMES[task_type],
            display_order=order,
        )
        self.session.add(group)
        await self.session.flush()
        return group


async def generate_project(
    session: AsyncSession,
    generator: TaskBreakdownGenerator,
    user_id: str,
    request: GenerationRequest,
    logger: Optional[GenerationLogger] = None,
) -> BuildResult:
    """Run a full generation: prompt, model call, parse, persist.

    The model call completes before anything is written.

    Raises:
        ValidationError, GenerationFailed, ParseError, PersistenceError
    """
    logger = logger or GenerationLogger(None)
    logger.log_start(request.model_dump())

    try:
        breakdown = await generator.generate(request, logger)
        result = await ProjectBuilder(session).build(user_id, request, breakdown.tasks)
    except TaskforgeError as e:
        if isinstance(e, PersistenceError):
            logger.log_error("PersistenceError", e.message, raw_error=repr(e.__cause__))
        logger.log_end("failure")
        raise

    result.quarantined_count = len(breakdown.quarantined)
    logger.log_persisted(
        project_id=result.project.id,
        groups=len(result.groups),
        tasks=len(result.tasks),
        ungrouped_types=result.ungrouped_types,
    )
    logger.log_end("success", project_id=result.project.id)
    return result
