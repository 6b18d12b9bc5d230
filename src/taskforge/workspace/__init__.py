"""Workspace services: generation persistence, reordering and project CRUD."""

from .builder import BuildResult, ProjectBuilder, generate_project, project_title, present_types
from .reorder import ReorderResult, reorder_tasks, is_noop, moves_group
from .projects import (
    GroupWithTasks,
    ProjectDetails,
    create_project,
    delete_project,
    delete_task_group,
    get_owned_project,
    get_project_details,
    list_groups,
    list_projects,
    list_task_edits,
    list_tasks,
    update_task,
)

__all__ = [
    "BuildResult",
    "ProjectBuilder",
    "generate_project",
    "project_title",
    "present_types",
    "ReorderResult",
    "reorder_tasks",
    "is_noop",
    "moves_group",
    "GroupWithTasks",
    "ProjectDetails",
    "create_project",
    "delete_project",
    "delete_task_group",
    "get_owned_project",
    "get_project_details",
    "list_groups",
    "list_projects",
    "list_task_edits",
    "list_tasks",
    "update_task",
]
