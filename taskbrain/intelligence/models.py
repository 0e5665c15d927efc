"""Result models returned by the intelligence engine."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from taskbrain.integrations.ports import CalendarEvent
from taskbrain.tasks.models import TaskView

WorkloadLevel = Literal["light", "moderate", "heavy", "overloaded"]


class ScoredTask(BaseModel):
    """A task with its intelligence score."""

    task: TaskView
    score: int


class PrioritySuggestions(BaseModel):
    """Ranked view of the active backlog."""

    high: list[ScoredTask] = Field(default_factory=list)
    medium: list[ScoredTask] = Field(default_factory=list)
    energy_matched: list[ScoredTask] = Field(default_factory=list)
    context_based: list[ScoredTask] = Field(default_factory=list)
    generated_at: datetime


class WorkloadEstimate(BaseModel):
    total_minutes: int
    level: WorkloadLevel


class DailySchedule(BaseModel):
    """Greedy time-block placement for a single day."""

    date: date
    morning: list[ScoredTask] = Field(default_factory=list)
    afternoon: list[ScoredTask] = Field(default_factory=list)
    evening: list[ScoredTask] = Field(default_factory=list)
    buffer: list[ScoredTask] = Field(default_factory=list)
    estimated_workload: WorkloadEstimate
    energy_optimization: list[str] = Field(default_factory=list)
    calendar_events: list[CalendarEvent] = Field(default_factory=list)
    calendar_available: bool = True


class RescheduleSuggestion(BaseModel):
    """Advisory new date for an overdue task. Never applied automatically."""

    task_id: int
    content: str
    current_due_date: datetime | None
    suggested_date: date
    impact_score: float


class OverdueAnalysis(BaseModel):
    total_overdue: int
    critical_overdue: int
    avg_overdue_days: float
    blocked_dependents: int
    reschedule_suggestions: list[RescheduleSuggestion] = Field(default_factory=list)
    impact_analysis: dict[str, Any] = Field(default_factory=dict)


class RescheduleConflict(BaseModel):
    """Another active task already due on the requested day."""

    task_id: int
    content: str
    estimated_duration: int


class RescheduleResult(BaseModel):
    """Outcome of a reschedule request.

    `rescheduled` is True only when the new due date was written.
    """

    task_id: int
    requested_date: date
    impact_score: float
    conflicts: list[RescheduleConflict] = Field(default_factory=list)
    alternatives: list[date] = Field(default_factory=list)
    feasible: bool
    rescheduled: bool = False
    task: TaskView | None = None


class BatchRescheduleItem(BaseModel):
    task_id: int
    success: bool
    result: RescheduleResult | None = None
    error: str | None = None


class PriorityAnalysis(BaseModel):
    suggested_priority: int
    confidence: float
    reasons: list[str] = Field(default_factory=list)


class DurationEstimate(BaseModel):
    estimated_minutes: int
    confidence: float
    matched_keyword: str | None = None


class OptimalTime(BaseModel):
    suggested_time: str
    confidence: float
    reason: str


class DependencyAnalysis(BaseModel):
    candidates: list[int] = Field(default_factory=list)
    confidence: float


class BreakdownSuggestion(BaseModel):
    should_break_down: bool
    subtasks: list[str] = Field(default_factory=list)
    confidence: float


class ContextRecommendation(BaseModel):
    tags: list[str] = Field(default_factory=list)
    confidence: float


class TaskAnalysis(BaseModel):
    """Sub-analyses of a new task and the merged auto-apply decision.

    `updates` holds only the fields whose own confidence clears its
    per-field threshold; it is meant to be applied when `auto_apply` is set.
    """

    task_id: int
    priority: PriorityAnalysis
    duration: DurationEstimate
    optimal_time: OptimalTime
    dependencies: DependencyAnalysis
    breakdown: BreakdownSuggestion
    context: ContextRecommendation
    mean_confidence: float
    auto_apply: bool
    updates: dict[str, Any] = Field(default_factory=dict)


class CompletionPatterns(BaseModel):
    optimal_hours: list[int] = Field(default_factory=list)
    optimal_days: list[str] = Field(default_factory=list)
    completion_velocity: float = 0.0
    accuracy_rate: float = 0.0
    sample_size: int = 0


class TaskImpact(BaseModel):
    task_id: int
    dependents_count: int
    project_task_count: int
    deadline_cascade: list[int] = Field(default_factory=list)


class Recommendations(BaseModel):
    kind: str
    items: list[str] = Field(default_factory=list)
