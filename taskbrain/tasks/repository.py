"""Task repository: durable records, snapshot cache and event log.

The repository is the single writer of task records. Every mutation
invalidates the cache entry before issuing the store write and again once
the write completes. Each invalidation bumps a per-task generation; a read
that missed the cache only repopulates it when the generation is unchanged
since the miss, so a snapshot read before a concurrent write is never
cached over it. Derived fields are never cached; they are computed from
the raw record on every read.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, time, timedelta
from typing import Any

from taskbrain.errors import ValidationError
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import TASK_MUTATIONS
from taskbrain.tasks.cache import TaskCache
from taskbrain.tasks.dates import parse_due_date
from taskbrain.tasks.models import (
    ActivityEntry,
    DueBucket,
    ProductivityAnalytics,
    SyncStatus,
    Task,
    TaskEvent,
    TaskEventType,
    TaskFilters,
    TaskQuery,
    TaskSource,
    TaskView,
    UserPattern,
    utc_now,
)
from taskbrain.tasks.store import TaskOrder, TaskStore
from taskbrain.tasks.validation import validate_create, validate_filters, validate_update

logger = get_logger(__name__)

COMPLETION_TIME = "completion_time"

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}


def _json_safe(values: Mapping[str, Any]) -> dict[str, Any]:
    """Snapshot a change set for the event log."""
    safe: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, datetime):
            safe[key] = value.isoformat()
        elif hasattr(value, "value"):
            safe[key] = value.value
        else:
            safe[key] = value
    return safe


class TaskRepository:
    """Cached, event-logged access to task records.

    Lookups that miss return None (or False for delete); the service layer
    decides whether that becomes a NotFoundError.
    """

    def __init__(
        self,
        store: TaskStore,
        cache: TaskCache,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._cache = cache
        self._clock = clock
        self._generations: dict[int, int] = {}

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    def now(self) -> datetime:
        return self._clock()

    def _view(self, task: Task) -> TaskView:
        return TaskView.from_task(task, self._clock())

    def _start_of_day(self, now: datetime) -> datetime:
        return datetime.combine(now.date(), time(0, 0), tzinfo=now.tzinfo)

    def _coerce_due_date(self, value: Any, task_id: int | None = None) -> datetime | None:
        """Parse a due date, storing it as unset when it cannot be read."""
        try:
            return parse_due_date(value, self._clock())
        except ValueError as e:
            logger.warning(
                "due_date_parse_failed",
                task_id=task_id,
                value=str(value),
                error=str(e),
            )
            return None

    async def _log_event(
        self,
        task_id: int,
        event_type: TaskEventType,
        data: Mapping[str, Any],
    ) -> TaskEvent:
        event = await self._store.append_event(
            TaskEvent(
                task_id=task_id,
                event_type=event_type,
                event_data=_json_safe(data),
                timestamp=self._clock(),
            )
        )
        TASK_MUTATIONS.labels(event_type=event_type.value).inc()
        return event

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> TaskView:
        """Validate and insert a new task.

        Raises:
            ValidationError: If required fields are missing or out of range
            ConflictError: If (source, external_id) already names a live task
        """
        payload = validate_create(data)
        now = self._clock()
        values = payload.model_dump()
        values["due_date"] = self._coerce_due_date(values.get("due_date"))
        values["sync_status"] = SyncStatus.SYNCED
        values["created_at"] = now

        task = await self._store.insert_task(values)
        await self._log_event(
            task.id,
            TaskEventType.CREATED,
            {
                "content": task.content,
                "priority": task.priority,
                "due_date": task.due_date,
                "source": task.source,
                "external_id": task.external_id,
            },
        )
        await self._cache.set(task)

        logger.info(
            "task_created",
            task_id=task.id,
            source=task.source.value,
            external_id=task.external_id,
        )
        return self._view(task)

    async def _invalidate(self, task_id: int) -> None:
        self._generations[task_id] = self._generations.get(task_id, 0) + 1
        await self._cache.invalidate(task_id)

    async def _load(self, task_id: int) -> Task | None:
        task = await self._cache.get(task_id)
        if task is None:
            generation = self._generations.get(task_id, 0)
            task = await self._store.get_task(task_id)
            if task is None:
                return None
            if self._generations.get(task_id, 0) == generation:
                await self._cache.set(task)
            else:
                logger.debug("cache_fill_skipped", task_id=task_id)
        if task.sync_status == SyncStatus.DELETED:
            return None
        return task

    async def get(self, task_id: int) -> TaskView | None:
        """Get a task with derived fields computed as of now.

        Soft-deleted tasks are reported as absent.
        """
        task = await self._load(task_id)
        return self._view(task) if task else None

    async def list(
        self,
        filters: TaskFilters | Mapping[str, Any] | None = None,
    ) -> list[TaskView]:
        """List non-deleted tasks.

        Ordered by priority ascending then due_date ascending (nulls last),
        so a priority=1 task is listed before a priority=5 task.
        """
        if filters is None:
            filters = TaskFilters()
        elif not isinstance(filters, TaskFilters):
            filters = validate_filters(filters)
        tasks = await self._store.list_tasks(self._query_for(filters), order="priority")
        return [self._view(task) for task in tasks]

    def _query_for(self, filters: TaskFilters) -> TaskQuery:
        now = self._clock()
        today = self._start_of_day(now)
        query = TaskQuery(project_id=filters.project, priority=filters.priority)
        if filters.status == "active":
            query.completed = False
        elif filters.status == "completed":
            query.completed = True

        if filters.due_date == DueBucket.TODAY:
            query.due_from = today
            query.due_before = today + timedelta(days=1)
        elif filters.due_date == DueBucket.WEEK:
            query.due_from = today
            query.due_before = today + timedelta(days=7)
        elif filters.due_date == DueBucket.OVERDUE:
            query.due_before = now
            query.completed = False
        return query

    async def update(self, task_id: int, data: Mapping[str, Any]) -> TaskView | None:
        """Apply a partial update restricted to the mutable field allow-list.

        Returns None when the task does not exist (zero rows affected).

        Raises:
            ValidationError: If any supplied field is invalid; nothing is written
        """
        changes = validate_update(data).model_dump(exclude_unset=True)
        if "due_date" in changes:
            changes["due_date"] = self._coerce_due_date(changes["due_date"], task_id)
        if not changes:
            return await self.get(task_id)

        await self._invalidate(task_id)
        rows = await self._store.update_task(
            task_id, {**changes, "updated_at": self._clock()}
        )
        if rows == 0:
            logger.debug("task_update_no_rows", task_id=task_id)
            return None

        await self._log_event(task_id, TaskEventType.UPDATED, changes)
        await self._invalidate(task_id)

        logger.info("task_updated", task_id=task_id, fields=sorted(changes))
        return await self.get(task_id)

    async def complete(
        self,
        task_id: int,
        actual_duration: int | None = None,
    ) -> TaskView | None:
        """Mark a task completed and record a completion-time pattern.

        Raises:
            ValidationError: If actual_duration is not a positive integer
        """
        if actual_duration is not None and (
            not isinstance(actual_duration, int) or actual_duration <= 0
        ):
            raise ValidationError("actual_duration must be a positive integer")

        task = await self._load(task_id)
        if task is None:
            return None

        now = self._clock()
        changes: dict[str, Any] = {"completed": True, "updated_at": now}
        if actual_duration is not None:
            changes["actual_duration"] = actual_duration

        await self._invalidate(task_id)
        rows = await self._store.update_task(task_id, changes)
        if rows == 0:
            return None

        await self._log_event(
            task_id,
            TaskEventType.COMPLETED,
            {
                "actual_duration": actual_duration,
                "estimated_duration": task.estimated_duration,
            },
        )
        await self.record_pattern(
            COMPLETION_TIME,
            {
                "hour": now.hour,
                "day": now.weekday(),
                "priority": task.priority,
                "estimated_duration": task.estimated_duration,
                "actual_duration": actual_duration,
            },
        )
        await self._invalidate(task_id)

        logger.info("task_completed", task_id=task_id, actual_duration=actual_duration)
        return await self.get(task_id)

    async def delete(self, task_id: int) -> bool:
        """Soft-delete a task. The record and its event history are kept."""
        await self._invalidate(task_id)
        rows = await self._store.update_task(
            task_id,
            {
                "completed": True,
                "sync_status": SyncStatus.DELETED,
                "updated_at": self._clock(),
            },
        )
        if rows == 0:
            return False

        await self._log_event(task_id, TaskEventType.DELETED, {"sync_status": SyncStatus.DELETED})
        await self._invalidate(task_id)

        logger.info("task_deleted", task_id=task_id)
        return True

    async def find_by_external_id(
        self,
        external_id: str,
        source: TaskSource | None = None,
    ) -> TaskView | None:
        task = await self._store.find_by_external_id(external_id, source)
        return self._view(task) if task else None

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def count_active(self) -> int:
        return await self._store.count_tasks(TaskQuery(completed=False))

    async def count_overdue(self) -> int:
        return await self._store.count_tasks(
            TaskQuery(completed=False, due_before=self._clock())
        )

    async def count_due_today(self) -> int:
        today = self._start_of_day(self._clock())
        return await self._store.count_tasks(
            TaskQuery(
                completed=False,
                due_from=today,
                due_before=today + timedelta(days=1),
            )
        )

    async def count_high_priority(self) -> int:
        return await self._store.count_tasks(TaskQuery(completed=False, min_priority=4))

    async def recent_activity(self, limit: int = 10) -> list[ActivityEntry]:
        """Event log entries joined with task content, newest first."""
        events = await self._store.list_events(limit=limit)
        entries = []
        for event in events:
            task = await self._store.get_task(event.task_id)
            entries.append(
                ActivityEntry(
                    event_id=event.id,
                    task_id=event.task_id,
                    event_type=event.event_type,
                    event_data=event.event_data,
                    timestamp=event.timestamp,
                    content=task.content if task else None,
                )
            )
        return entries

    async def upcoming_deadlines(self, limit: int = 10) -> list[TaskView]:
        """Incomplete tasks due in the future, soonest first."""
        tasks = await self._store.list_tasks(
            TaskQuery(completed=False, due_after=self._clock()),
            order="due_date",
            limit=limit,
        )
        return [self._view(task) for task in tasks]

    async def productivity_analytics(self, period: str = "week") -> ProductivityAnalytics:
        """Completion rate and average completion time over a trailing period.

        Unknown periods fall back to a week.
        """
        if period not in PERIOD_DAYS:
            period = "week"
        since = self._clock() - timedelta(days=PERIOD_DAYS[period])

        total = await self._store.count_tasks(
            TaskQuery(created_from=since, include_deleted=True)
        )
        completed = await self._store.list_tasks(
            TaskQuery(completed=True, updated_from=since)
        )
        durations = [t.actual_duration for t in completed if t.actual_duration is not None]

        return ProductivityAnalytics(
            period=period,
            completed_tasks=len(completed),
            total_tasks=total,
            completion_rate=round(len(completed) / total * 100, 2) if total else 0.0,
            avg_completion_time=round(sum(durations) / len(durations), 2) if durations else 0.0,
        )

    # ------------------------------------------------------------------
    # Read helpers for the intelligence engine
    # ------------------------------------------------------------------

    async def active_tasks(self, *, order: TaskOrder = "id") -> list[TaskView]:
        """Incomplete, non-deleted tasks (insertion order by default)."""
        tasks = await self._store.list_tasks(TaskQuery(completed=False), order=order)
        return [self._view(task) for task in tasks]

    async def dependents(self, task_id: int) -> list[TaskView]:
        """Active tasks that list task_id as a dependency."""
        tasks = await self._store.list_tasks(
            TaskQuery(completed=False, depends_on=task_id), order="id"
        )
        return [self._view(task) for task in tasks]

    async def events(
        self,
        event_type: TaskEventType | None = None,
        *,
        task_id: int | None = None,
        since: datetime | None = None,
    ) -> list[TaskEvent]:
        return await self._store.list_events(
            task_id=task_id, event_type=event_type, since=since
        )

    async def patterns(
        self,
        pattern_type: str,
        *,
        since: datetime | None = None,
    ) -> list[UserPattern]:
        return await self._store.list_patterns(pattern_type, since=since)

    async def record_pattern(
        self,
        pattern_type: str,
        data: Mapping[str, Any],
        confidence: float = 1.0,
    ) -> UserPattern:
        return await self._store.append_pattern(
            UserPattern(
                pattern_type=pattern_type,
                pattern_data=dict(data),
                confidence_score=confidence,
                last_updated=self._clock(),
            )
        )
