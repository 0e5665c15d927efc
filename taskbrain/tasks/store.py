"""TaskStore abstract interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal

from taskbrain.tasks.models import (
    Task,
    TaskEvent,
    TaskEventType,
    TaskQuery,
    TaskSource,
    UserPattern,
)

TaskOrder = Literal["priority", "due_date", "id"]


class TaskStore(ABC):
    """Durable storage for tasks, the task event log and user patterns.

    Stores are the source of truth; caching lives in the repository.
    Updates report affected row counts so callers can detect a task that
    vanished between read and write.
    """

    @abstractmethod
    async def insert_task(self, values: dict[str, Any]) -> Task:
        """Insert a task, assigning id and timestamps.

        Raises:
            ConflictError: If (source, external_id) collides with a live task
        """
        pass

    @abstractmethod
    async def get_task(self, task_id: int) -> Task | None:
        """Get a task by id, including soft-deleted records."""
        pass

    @abstractmethod
    async def find_by_external_id(
        self, external_id: str, source: TaskSource | None = None
    ) -> Task | None:
        """Find a non-deleted task by provider id."""
        pass

    @abstractmethod
    async def list_tasks(
        self,
        query: TaskQuery,
        *,
        order: TaskOrder = "priority",
        limit: int | None = None,
    ) -> list[Task]:
        """List tasks matching a query.

        "priority" order sorts ascending on priority then ascending on
        due_date (nulls last), so priority=1 precedes priority=5.
        """
        pass

    @abstractmethod
    async def count_tasks(self, query: TaskQuery) -> int:
        """Count tasks matching a query."""
        pass

    @abstractmethod
    async def update_task(self, task_id: int, changes: dict[str, Any]) -> int:
        """Apply changes to a non-deleted task.

        updated_at never moves backwards. Returns the number of rows
        affected (0 when the task is absent or deleted).
        """
        pass

    @abstractmethod
    async def append_event(self, event: TaskEvent) -> TaskEvent:
        """Append an event to the log, returning it with its id."""
        pass

    @abstractmethod
    async def list_events(
        self,
        *,
        task_id: int | None = None,
        event_type: TaskEventType | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[TaskEvent]:
        """List events newest first."""
        pass

    @abstractmethod
    async def append_pattern(self, pattern: UserPattern) -> UserPattern:
        """Append a user pattern observation."""
        pass

    @abstractmethod
    async def list_patterns(
        self,
        pattern_type: str,
        *,
        since: datetime | None = None,
    ) -> list[UserPattern]:
        """List patterns of a type, oldest first."""
        pass
