"""Task domain models.

Task is the persisted record; TaskView adds the derived fields that are
computed fresh on every read and never stored or cached.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class SyncStatus(str, Enum):
    """Lifecycle tag, distinct from completion state."""

    SYNCED = "synced"
    PENDING = "pending"
    DELETED = "deleted"


class TaskSource(str, Enum):
    """Where a task originated."""

    MANUAL = "manual"
    TODOIST = "todoist"
    LINEAR = "linear"


class TaskEventType(str, Enum):
    """Kinds of audit records in the task event log."""

    CREATED = "created"
    UPDATED = "updated"
    COMPLETED = "completed"
    DELETED = "deleted"


class DueBucket(str, Enum):
    """Due-date filter buckets for task listings."""

    TODAY = "today"
    WEEK = "week"
    OVERDUE = "overdue"


def _dedupe(values: list[Any]) -> list[Any]:
    """Drop repeats while keeping first-seen order (set semantics, stable output)."""
    return list(dict.fromkeys(values))


class Task(BaseModel):
    """A persisted task record."""

    id: int
    external_id: str | None = None
    content: str
    description: str | None = None
    project_id: str | None = None
    priority: int = Field(default=1, ge=1, le=5)
    due_date: datetime | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    actual_duration: int | None = None
    energy_level: int = Field(default=3, ge=1, le=5)
    context_tags: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    dependencies: list[int] = Field(default_factory=list)
    completed: bool = False
    sync_status: SyncStatus = SyncStatus.SYNCED
    source: TaskSource = TaskSource.MANUAL
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("context_tags", "labels", "dependencies")
    @classmethod
    def _as_set(cls, value: list[Any]) -> list[Any]:
        return _dedupe(value)

    @property
    def is_active(self) -> bool:
        """Not completed and not soft-deleted."""
        return not self.completed and self.sync_status != SyncStatus.DELETED


class TaskView(Task):
    """Task plus derived fields computed at read time."""

    is_overdue: bool = False
    days_until_due: int | None = None
    urgency_score: int = 0

    @classmethod
    def from_task(cls, task: Task, now: datetime) -> "TaskView":
        """Compute derived fields for a task as of `now`."""
        is_overdue = bool(
            task.due_date is not None and not task.completed and task.due_date < now
        )
        days_until_due = None
        urgency = task.priority
        if task.due_date is not None:
            days = (task.due_date - now).total_seconds() / 86400
            days_until_due = round(days)
            if days < 0:
                urgency += 10
            elif days < 1:
                urgency += 5
            elif days < 3:
                urgency += 3
        return cls(
            **task.model_dump(),
            is_overdue=is_overdue,
            days_until_due=days_until_due,
            urgency_score=urgency,
        )

    def to_task(self) -> Task:
        """Strip derived fields."""
        return Task(**self.model_dump(include=set(Task.model_fields)))


class TaskCreate(BaseModel):
    """Validated input for creating a task."""

    model_config = ConfigDict(extra="ignore")

    content: str
    description: str | None = None
    project_id: str | None = None
    priority: int = Field(default=1, ge=1, le=5)
    due_date: datetime | str | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    energy_level: int = Field(default=3, ge=1, le=5)
    context_tags: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    dependencies: list[int] = Field(default_factory=list)
    source: TaskSource = TaskSource.MANUAL
    external_id: str | None = None


MUTABLE_FIELDS: frozenset[str] = frozenset({
    "content",
    "description",
    "priority",
    "due_date",
    "completed",
    "estimated_duration",
    "energy_level",
    "context_tags",
    "labels",
})


class TaskUpdate(BaseModel):
    """Partial update restricted to the mutable field allow-list.

    Unrecognized keys are dropped; use `model_dump(exclude_unset=True)` to
    get only the fields the caller supplied.
    """

    model_config = ConfigDict(extra="ignore")

    content: str | None = None
    description: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)
    due_date: datetime | str | None = None
    completed: bool | None = None
    estimated_duration: int | None = Field(default=None, gt=0)
    energy_level: int | None = Field(default=None, ge=1, le=5)
    context_tags: list[str] | None = None
    labels: list[str] | None = None


class TaskFilters(BaseModel):
    """Filters accepted by task listings."""

    status: Literal["active", "completed"] | None = None
    project: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)
    due_date: DueBucket | None = None


class TaskQuery(BaseModel):
    """Storage-level query built by the repository from filters."""

    completed: bool | None = None
    project_id: str | None = None
    priority: int | None = None
    min_priority: int | None = None
    due_from: datetime | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    updated_from: datetime | None = None
    updated_to: datetime | None = None
    max_estimated_duration: int | None = None
    min_energy_level: int | None = None
    max_energy_level: int | None = None
    depends_on: int | None = None
    include_deleted: bool = False


class TaskEvent(BaseModel):
    """Append-only audit record.

    task_id is a weak reference; events outlive the task they describe.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    task_id: int
    event_type: TaskEventType
    event_data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class UserPattern(BaseModel):
    """Observational record feeding the scheduling heuristics."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    pattern_type: str
    pattern_data: dict[str, Any] = Field(default_factory=dict)
    confidence_score: float = 1.0
    last_updated: datetime = Field(default_factory=utc_now)


class ActivityEntry(BaseModel):
    """Event log entry joined with the content of its task."""

    event_id: int | None
    task_id: int
    event_type: TaskEventType
    event_data: dict[str, Any]
    timestamp: datetime
    content: str | None = None


class ProductivityAnalytics(BaseModel):
    """Completion statistics over a trailing period."""

    period: str
    completed_tasks: int
    total_tasks: int
    completion_rate: float
    avg_completion_time: float
