"""Data models for the task breakdown workspace.

Uses Pydantic for validation. Model output is untrusted free text, so every
generated record goes through GeneratedTask before it reaches the store.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TEMPLATE_TYPE = "Web Application"

# Project titles are derived from the feature goal
MAX_TITLE_LENGTH = 100


class ProjectStatus(str, Enum):
    """Lifecycle of a project."""
    DRAFT = "draft"
    GENERATED = "generated"
    COMPLETED = "completed"


class TaskType(str, Enum):
    """Kind of work item produced by a breakdown."""
    USER_STORY = "user-story"
    ENGINEERING_TASK = "engineering-task"
    RISK = "risk"
    UNKNOWN = "unknown"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class ExportFormat(str, Enum):
    """Document formats supported by the exporter."""
    MARKDOWN = "markdown"
    TEXT = "text"


class LogEntryType(str, Enum):
    """Types of entries written to a generation log."""
    GENERATION_START = "generation_start"
    PROMPT = "prompt"
    MODEL_RESPONSE = "model_response"
    PARSE_RESULT = "parse_result"
    PERSISTED = "persisted"
    ERROR = "error"
    GENERATION_END = "generation_end"


# Groups are created in this order; types absent from a breakdown are skipped
CANONICAL_TYPE_ORDER: list[TaskType] = [
    TaskType.USER_STORY,
    TaskType.ENGINEERING_TASK,
    TaskType.RISK,
    TaskType.UNKNOWN,
]

TYPE_GROUP_NAMES: dict[TaskType, str] = {
    TaskType.USER_STORY: "User Stories",
    TaskType.ENGINEERING_TASK: "Engineering Tasks",
    TaskType.RISK: "Risks",
    TaskType.UNKNOWN: "Unknowns",
}


class GenerationRequest(BaseModel):
    """The four free-text inputs of a breakdown request."""
    feature_goal: str
    target_users: str
    constraints: str
    template_type: str = DEFAULT_TEMPLATE_TYPE


class GeneratedTask(BaseModel):
    """A single task record decoded from model output.

    Enum fields are matched case-insensitively. ``estimatedHours`` is the
    wire name used in the prompt; anything that is not a positive number
    is treated as absent.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: str
    type: TaskType
    priority: TaskPriority
    difficulty: TaskDifficulty
    estimated_hours: Optional[float] = Field(default=None, alias="estimatedHours")

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("type", "priority", "difficulty", mode="before")
    @classmethod
    def _normalize_enum(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("estimated_hours", mode="before")
    @classmethod
    def _positive_hours(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        try:
            hours = float(v)
        except (TypeError, ValueError):
            return None
        return hours if hours > 0 else None


class QuarantinedRecord(BaseModel):
    """A model output record that failed schema validation."""
    index: int
    raw: Any = None
    reason: str


class ParsedResponse(BaseModel):
    """Outcome of parsing a raw model response."""
    tasks: list[GeneratedTask] = Field(default_factory=list)
    quarantined: list[QuarantinedRecord] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.tasks)


class GenerationStats(BaseModel):
    """Summary counts reported after generation and on project details."""
    total_tasks: int = 0
    user_stories: int = 0
    engineering_tasks: int = 0
    risks: int = 0

    @classmethod
    def from_types(cls, types: list[str]) -> "GenerationStats":
        """Count task types; risks and unknowns share one bucket."""
        return cls(
            total_tasks=len(types),
            user_stories=sum(1 for t in types if t == TaskType.USER_STORY.value),
            engineering_tasks=sum(1 for t in types if t == TaskType.ENGINEERING_TASK.value),
            risks=sum(
                1 for t in types
                if t in (TaskType.RISK.value, TaskType.UNKNOWN.value)
            ),
        )


class ReorderUpdate(BaseModel):
    """New position (and optionally group) for one task.

    Leaving out ``task_group_id`` keeps the current group; sending null
    ungroups the task.
    """
    id: str
    display_order: int
    task_group_id: Optional[str] = None


class TaskChanges(BaseModel):
    """Editable task fields for a partial update."""
    title: Optional[str] = None
    description: Optional[str] = None
    task_type: Optional[TaskType] = None
    priority: Optional[TaskPriority] = None
    difficulty: Optional[TaskDifficulty] = None
    estimated_hours: Optional[float] = Field(default=None, gt=0)
    task_status: Optional[TaskStatus] = None
    task_group_id: Optional[str] = None
    display_order: Optional[int] = None
