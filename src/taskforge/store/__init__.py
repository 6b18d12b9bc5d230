"""Relational persistence for the workspace."""

from .db import Database, init_db
from .tables import Base, User, Project, TaskGroup, Task, TaskEdit, new_id

__all__ = [
    "Database",
    "init_db",
    "Base",
    "User",
    "Project",
    "TaskGroup",
    "Task",
    "TaskEdit",
    "new_id",
]
