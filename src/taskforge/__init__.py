"""Taskforge - AI-assisted breakdown of feature ideas into project workspaces.

Turns a feature goal into user stories, engineering tasks and risks using a
hosted text model, and stores them as an ordered, grouped project.
"""

__version__ = "0.1.0"

from .models import (
    ProjectStatus, TaskType, TaskPriority, TaskDifficulty, TaskStatus,
    ExportFormat, GenerationRequest, GeneratedTask, GenerationStats,
)
from .config import AppConfig
from .errors import (
    TaskforgeError, ValidationError, Unauthorized, Forbidden, NotFound,
    GenerationFailed, ParseError, PersistenceError,
)

__all__ = [
    "ProjectStatus",
    "TaskType",
    "TaskPriority",
    "TaskDifficulty",
    "TaskStatus",
    "ExportFormat",
    "GenerationRequest",
    "GeneratedTask",
    "GenerationStats",
    "AppConfig",
    "TaskforgeError",
    "ValidationError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "GenerationFailed",
    "ParseError",
    "PersistenceError",
]
