"""Application services.

Thin orchestration over the repository and the intelligence engine.
This is where "absent" results from the lower layers become
NotFoundError.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field

from taskbrain.errors import ConflictError, IntegrationError, NotFoundError, TaskBrainError
from taskbrain.integrations.ports import CalendarEvent, CalendarSource, NullCalendarSource
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.intelligence.models import (
    BatchRescheduleItem,
    CompletionPatterns,
    DailySchedule,
    OverdueAnalysis,
    PrioritySuggestions,
    Recommendations,
    RescheduleResult,
    TaskAnalysis,
    TaskImpact,
)
from taskbrain.intelligence.scheduling import task_minutes
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import AUTO_APPLIED
from taskbrain.tasks.models import ActivityEntry, ProductivityAnalytics, TaskFilters, TaskView
from taskbrain.tasks.repository import TaskRepository

logger = get_logger(__name__)

# Capacity status boundaries in minutes
CAPACITY_LEVELS = ((480, "light"), (960, "moderate"), (1440, "heavy"))

CAPACITY_ADVICE = {
    "light": "Capacity available for new work",
    "moderate": "Workload is manageable; protect focus time",
    "heavy": "Consider deferring low-priority tasks",
    "overloaded": "Reschedule or delegate before taking on more",
}


class CreatedTask(BaseModel):
    task: TaskView
    analysis: TaskAnalysis
    applied_updates: dict[str, Any] = Field(default_factory=dict)


class BulkCreateItem(BaseModel):
    index: int
    success: bool
    task: TaskView | None = None
    errors: list[str] = Field(default_factory=list)


class StatusSummary(BaseModel):
    active: int
    overdue: int
    due_today: int
    high_priority: int
    productivity_score: float
    recent_activity: list[ActivityEntry]
    upcoming_deadlines: list[TaskView]


class Capacity(BaseModel):
    total_estimated_hours: float
    status: str
    recommendation: str


class FullContext(BaseModel):
    """Everything a planning assistant needs about the backlog right now."""

    generated_at: datetime
    active_tasks: list[TaskView]
    overdue_tasks: list[TaskView]
    today_tasks: list[TaskView]
    high_priority_tasks: list[TaskView]
    productivity_score: float
    completion_patterns: CompletionPatterns
    recommendations: list[str]
    calendar_events: list[CalendarEvent]
    capacity: Capacity
    recent_activity: list[ActivityEntry]
    upcoming_deadlines: list[TaskView]


def capacity_for(tasks: Iterable[TaskView]) -> Capacity:
    minutes = sum(task_minutes(task) for task in tasks)
    status = next((level for limit, level in CAPACITY_LEVELS if minutes <= limit), "overloaded")
    return Capacity(
        total_estimated_hours=round(minutes / 60, 1),
        status=status,
        recommendation=CAPACITY_ADVICE[status],
    )


class TaskService:
    """Task CRUD plus intelligence-assisted creation."""

    def __init__(self, repository: TaskRepository, engine: IntelligenceEngine) -> None:
        self._repository = repository
        self._engine = engine

    async def get_task(self, task_id: int) -> TaskView:
        task = await self._repository.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def list_tasks(self, filters: TaskFilters | Mapping[str, Any] | None = None) -> list[TaskView]:
        return await self._repository.list(filters)

    async def create_task(self, fields: Mapping[str, Any]) -> TaskView:
        return await self._repository.create(fields)

    async def create_task_with_intelligence(self, fields: Mapping[str, Any]) -> CreatedTask:
        """Create a task, analyze it and apply high-confidence suggestions."""
        task = await self._repository.create(fields)
        analysis = await self._engine.analyze_new_task(task)
        applied: dict[str, Any] = {}
        if analysis.auto_apply and analysis.updates:
            updated = await self._repository.update(task.id, analysis.updates)
            if updated is not None:
                task = updated
                applied = analysis.updates
                AUTO_APPLIED.labels(kind="analysis").inc()
                logger.info("analysis_auto_applied", task_id=task.id, fields=sorted(applied))
        return CreatedTask(task=task, analysis=analysis, applied_updates=applied)

    async def bulk_create(self, items: Iterable[Mapping[str, Any]]) -> list[BulkCreateItem]:
        """Create several tasks; each item succeeds or fails on its own."""
        results = []
        for index, item in enumerate(items):
            try:
                task = await self._repository.create(item)
            except TaskBrainError as e:
                errors = getattr(e, "errors", [e.message])
                results.append(BulkCreateItem(index=index, success=False, errors=errors))
                continue
            except ConflictError as e:
                results.append(BulkCreateItem(index=index, success=False, errors=[str(e)]))
                continue
            results.append(BulkCreateItem(index=index, success=True, task=task))
        return results

    async def update_task(self, task_id: int, fields: Mapping[str, Any]) -> TaskView:
        task = await self._repository.update(task_id, fields)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def complete_task(self, task_id: int, actual_duration: int | None = None) -> TaskView:
        task = await self._repository.complete(task_id, actual_duration)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def delete_task(self, task_id: int) -> None:
        if not await self._repository.delete(task_id):
            raise NotFoundError("Task", task_id)

    async def status_summary(self) -> StatusSummary:
        return StatusSummary(
            active=await self._repository.count_active(),
            overdue=await self._repository.count_overdue(),
            due_today=await self._repository.count_due_today(),
            high_priority=await self._repository.count_high_priority(),
            productivity_score=await self._engine.productivity_score(),
            recent_activity=await self._repository.recent_activity(10),
            upcoming_deadlines=await self._repository.upcoming_deadlines(10),
        )

    async def productivity_analytics(self, period: str = "week") -> ProductivityAnalytics:
        return await self._repository.productivity_analytics(period)


class IntelligenceService:
    """Intelligence operations and the full context bundle."""

    def __init__(
        self,
        repository: TaskRepository,
        engine: IntelligenceEngine,
        calendar: CalendarSource | None = None,
    ) -> None:
        self._repository = repository
        self._engine = engine
        self._calendar = calendar or NullCalendarSource()

    async def priorities(self) -> PrioritySuggestions:
        return await self._engine.suggest_priorities()

    async def daily_schedule(self, day: Any = None) -> DailySchedule:
        return await self._engine.suggest_daily_schedule(day)

    async def overdue(self) -> OverdueAnalysis:
        return await self._engine.overdue_analysis()

    async def reschedule(self, task_id: int, new_date: Any) -> RescheduleResult:
        result = await self._engine.smart_reschedule(task_id, new_date)
        if result is None:
            raise NotFoundError("Task", task_id)
        return result

    async def reschedule_batch(
        self, requests: Iterable[Mapping[str, Any]]
    ) -> list[BatchRescheduleItem]:
        return await self._engine.reschedule_batch(requests)

    async def task_impact(self, task_id: int) -> TaskImpact:
        impact = await self._engine.analyze_task_impact(task_id)
        if impact is None:
            raise NotFoundError("Task", task_id)
        return impact

    async def completion_patterns(self) -> CompletionPatterns:
        return await self._engine.analyze_completion_patterns()

    async def recommendations(self, kind: str = "general") -> Recommendations:
        return await self._engine.recommendations(kind)

    async def _calendar_events(self, day: date) -> list[CalendarEvent]:
        try:
            return await self._calendar.get_events_for_date(day)
        except IntegrationError as e:
            logger.warning("calendar_unavailable", integration=e.integration_name, error=str(e))
            return []

    async def full_context(self, now: datetime | None = None) -> FullContext:
        """Active, overdue, today and high-priority tasks with productivity,
        calendar, capacity, recent activity and upcoming deadlines."""
        now = now or self._repository.now()
        active = await self._repository.list({"status": "active"})
        overdue = await self._repository.list({"due_date": "overdue"})
        today = await self._repository.list({"status": "active", "due_date": "today"})
        recommendations = await self._engine.recommendations("general")

        return FullContext(
            generated_at=now,
            active_tasks=active,
            overdue_tasks=overdue,
            today_tasks=today,
            high_priority_tasks=[task for task in active if task.priority >= 4],
            productivity_score=await self._engine.productivity_score(),
            completion_patterns=await self._engine.analyze_completion_patterns(),
            recommendations=recommendations.items,
            calendar_events=await self._calendar_events(now.date()),
            capacity=capacity_for(active),
            recent_activity=await self._repository.recent_activity(10),
            upcoming_deadlines=await self._repository.upcoming_deadlines(10),
        )

    async def context_for_date(self, day: Any) -> dict[str, Any]:
        """Schedule, calendar and due tasks for one date."""
        schedule = await self._engine.suggest_daily_schedule(day)
        start = datetime.combine(schedule.date, datetime.min.time(), tzinfo=self._repository.now().tzinfo)
        due = [
            task
            for task in await self._repository.list({"status": "active"})
            if task.due_date is not None and start <= task.due_date < start + timedelta(days=1)
        ]
        return {
            "date": schedule.date,
            "schedule": schedule,
            "due_tasks": due,
            "capacity": capacity_for(due),
        }
