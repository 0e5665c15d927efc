"""In-memory implementation of TaskStore."""

from datetime import UTC, datetime
from itertools import count
from typing import Any

from taskbrain.errors import ConflictError
from taskbrain.tasks.models import (
    SyncStatus,
    Task,
    TaskEvent,
    TaskEventType,
    TaskQuery,
    TaskSource,
    UserPattern,
    utc_now,
)
from taskbrain.tasks.store import TaskOrder, TaskStore


def _in_range(
    value: datetime | None,
    start: datetime | None,
    end: datetime | None,
) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    if start is not None and value < start:
        return False
    return not (end is not None and value > end)


def matches(task: Task, query: TaskQuery) -> bool:
    """Evaluate a TaskQuery against a single task."""
    if not query.include_deleted and task.sync_status == SyncStatus.DELETED:
        return False
    if query.completed is not None and task.completed != query.completed:
        return False
    if query.project_id is not None and task.project_id != query.project_id:
        return False
    if query.priority is not None and task.priority != query.priority:
        return False
    if query.min_priority is not None and task.priority < query.min_priority:
        return False
    if query.min_energy_level is not None and task.energy_level < query.min_energy_level:
        return False
    if query.max_energy_level is not None and task.energy_level > query.max_energy_level:
        return False
    if query.max_estimated_duration is not None and (
        task.estimated_duration is None
        or task.estimated_duration > query.max_estimated_duration
    ):
        return False
    if query.depends_on is not None and query.depends_on not in task.dependencies:
        return False
    due = task.due_date
    if query.due_from is not None and (due is None or due < query.due_from):
        return False
    if query.due_before is not None and (due is None or due >= query.due_before):
        return False
    if query.due_after is not None and (due is None or due <= query.due_after):
        return False
    if not _in_range(task.created_at, query.created_from, query.created_to):
        return False
    return _in_range(task.updated_at, query.updated_from, query.updated_to)


def sort_key(order: TaskOrder):
    """Sort key matching the SQL ORDER BY used by the Postgres store."""
    far_future = datetime.max.replace(tzinfo=UTC)

    def by_priority(task: Task) -> tuple:
        return (task.priority, task.due_date or far_future, task.id)

    def by_due_date(task: Task) -> tuple:
        return (task.due_date or far_future, task.id)

    def by_id(task: Task) -> tuple:
        return (task.id,)

    return {"priority": by_priority, "due_date": by_due_date, "id": by_id}[order]


class InMemoryTaskStore(TaskStore):
    """In-memory implementation of TaskStore for testing and development.

    Uses simple dict storage with linear scan for queries.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, Task] = {}
        self._events: list[TaskEvent] = []
        self._patterns: list[UserPattern] = []
        self._task_ids = count(1)
        self._event_ids = count(1)
        self._pattern_ids = count(1)

    async def insert_task(self, values: dict[str, Any]) -> Task:
        external_id = values.get("external_id")
        source = values.get("source", TaskSource.MANUAL)
        if external_id is not None and await self.find_by_external_id(external_id, source):
            raise ConflictError(
                f"Task with external_id '{external_id}' already exists for {source}"
            )
        now = values.get("created_at") or utc_now()
        task = Task(
            **{**values, "id": next(self._task_ids), "created_at": now, "updated_at": now}
        )
        self._tasks[task.id] = task
        return task

    async def get_task(self, task_id: int) -> Task | None:
        return self._tasks.get(task_id)

    async def find_by_external_id(
        self, external_id: str, source: TaskSource | None = None
    ) -> Task | None:
        for task in self._tasks.values():
            if task.external_id != external_id or task.sync_status == SyncStatus.DELETED:
                continue
            if source is None or task.source == source:
                return task
        return None

    async def list_tasks(
        self,
        query: TaskQuery,
        *,
        order: TaskOrder = "priority",
        limit: int | None = None,
    ) -> list[Task]:
        results = [task for task in self._tasks.values() if matches(task, query)]
        results.sort(key=sort_key(order))
        return results if limit is None else results[:limit]

    async def count_tasks(self, query: TaskQuery) -> int:
        return sum(1 for task in self._tasks.values() if matches(task, query))

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> int:
        task = self._tasks.get(task_id)
        if task is None or task.sync_status == SyncStatus.DELETED:
            return 0
        values = {**task.model_dump(), **changes}
        updated_at = changes.get("updated_at")
        values["updated_at"] = max(task.updated_at, updated_at) if updated_at else task.updated_at
        self._tasks[task_id] = Task(**values)
        return 1

    async def append_event(self, event: TaskEvent) -> TaskEvent:
        stored = event.model_copy(update={"id": next(self._event_ids)})
        self._events.append(stored)
        return stored

    async def list_events(
        self,
        *,
        task_id: int | None = None,
        event_type: TaskEventType | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[TaskEvent]:
        results = [
            event
            for event in self._events
            if (task_id is None or event.task_id == task_id)
            and (event_type is None or event.event_type == event_type)
            and (since is None or event.timestamp >= since)
        ]
        results.sort(key=lambda e: (e.timestamp, e.id or 0), reverse=True)
        return results if limit is None else results[:limit]

    async def append_pattern(self, pattern: UserPattern) -> UserPattern:
        stored = pattern.model_copy(update={"id": next(self._pattern_ids)})
        self._patterns.append(stored)
        return stored

    async def list_patterns(
        self,
        pattern_type: str,
        *,
        since: datetime | None = None,
    ) -> list[UserPattern]:
        return [
            pattern
            for pattern in self._patterns
            if pattern.pattern_type == pattern_type
            and (since is None or pattern.last_updated >= since)
        ]
