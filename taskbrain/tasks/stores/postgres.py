"""PostgreSQL implementation of TaskStore."""

from datetime import datetime
from typing import Any

import asyncpg

from taskbrain.db.pool import PostgresPool
from taskbrain.errors import ConflictError
from taskbrain.observability.logging import get_logger
from taskbrain.tasks.models import (
    SyncStatus,
    Task,
    TaskEvent,
    TaskEventType,
    TaskQuery,
    TaskSource,
    UserPattern,
)
from taskbrain.tasks.store import TaskOrder, TaskStore

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id SERIAL PRIMARY KEY,
    external_id VARCHAR(255),
    content TEXT NOT NULL,
    description TEXT,
    project_id VARCHAR(255),
    priority INTEGER NOT NULL DEFAULT 1 CHECK (priority BETWEEN 1 AND 5),
    due_date TIMESTAMPTZ,
    estimated_duration INTEGER CHECK (estimated_duration > 0),
    actual_duration INTEGER,
    energy_level INTEGER NOT NULL DEFAULT 3 CHECK (energy_level BETWEEN 1 AND 5),
    context_tags TEXT[] NOT NULL DEFAULT '{}',
    labels TEXT[] NOT NULL DEFAULT '{}',
    dependencies INTEGER[] NOT NULL DEFAULT '{}',
    completed BOOLEAN NOT NULL DEFAULT FALSE,
    sync_status VARCHAR(20) NOT NULL DEFAULT 'synced',
    source VARCHAR(50) NOT NULL DEFAULT 'manual',
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS task_events (
    id SERIAL PRIMARY KEY,
    task_id INTEGER NOT NULL,
    event_type VARCHAR(50) NOT NULL,
    event_data JSONB NOT NULL DEFAULT '{}',
    timestamp TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS user_patterns (
    id SERIAL PRIMARY KEY,
    pattern_type VARCHAR(50) NOT NULL,
    pattern_data JSONB NOT NULL DEFAULT '{}',
    confidence_score FLOAT NOT NULL DEFAULT 1.0,
    last_updated TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks(completed);
CREATE INDEX IF NOT EXISTS idx_task_events_type ON task_events(event_type);
CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_source_external_id
    ON tasks(source, external_id)
    WHERE external_id IS NOT NULL AND sync_status <> 'deleted';
"""

TASK_COLUMNS = (
    "id, external_id, content, description, project_id, priority, due_date, "
    "estimated_duration, actual_duration, energy_level, context_tags, labels, "
    "dependencies, completed, sync_status, source, created_at, updated_at"
)

ORDER_BY = {
    "priority": "priority ASC, due_date ASC NULLS LAST, id ASC",
    "due_date": "due_date ASC NULLS LAST, id ASC",
    "id": "id ASC",
}


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _row_to_task(row: asyncpg.Record) -> Task:
    return Task(**dict(row))


def _where(query: TaskQuery) -> tuple[str, list[Any]]:
    """Translate a TaskQuery into a WHERE clause with positional params."""
    clauses: list[str] = []
    params: list[Any] = []

    def add(template: str, value: Any) -> None:
        params.append(value)
        clauses.append(template.format(f"${len(params)}"))

    if not query.include_deleted:
        add("sync_status <> {}", SyncStatus.DELETED.value)
    if query.completed is not None:
        add("completed = {}", query.completed)
    if query.project_id is not None:
        add("project_id = {}", query.project_id)
    if query.priority is not None:
        add("priority = {}", query.priority)
    if query.min_priority is not None:
        add("priority >= {}", query.min_priority)
    if query.min_energy_level is not None:
        add("energy_level >= {}", query.min_energy_level)
    if query.max_energy_level is not None:
        add("energy_level <= {}", query.max_energy_level)
    if query.max_estimated_duration is not None:
        add("estimated_duration <= {}", query.max_estimated_duration)
    if query.depends_on is not None:
        add("{} = ANY(dependencies)", query.depends_on)
    if query.due_from is not None:
        add("due_date >= {}", query.due_from)
    if query.due_before is not None:
        add("due_date < {}", query.due_before)
    if query.due_after is not None:
        add("due_date > {}", query.due_after)
    if query.created_from is not None:
        add("created_at >= {}", query.created_from)
    if query.created_to is not None:
        add("created_at <= {}", query.created_to)
    if query.updated_from is not None:
        add("updated_at >= {}", query.updated_from)
    if query.updated_to is not None:
        add("updated_at <= {}", query.updated_to)

    where = " AND ".join(clauses) if clauses else "TRUE"
    return where, params


class PostgresTaskStore(TaskStore):
    """PostgreSQL implementation of TaskStore.

    Row-update semantics resolve concurrent writers: the last UPDATE wins,
    and an UPDATE matching zero rows is reported back as 0.
    """

    def __init__(self, pool: PostgresPool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        """Create tables and indexes if missing."""
        async with self._pool.acquire() as conn:
            await conn.execute(SCHEMA)
        logger.info("task_schema_ready")

    async def insert_task(self, values: dict[str, Any]) -> Task:
        columns = [key for key in values if key not in ("id", "updated_at")]
        params = [_enum_value(values[key]) for key in columns]
        created_at_index = columns.index("created_at") + 1 if "created_at" in columns else None
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        updated_at = f"${created_at_index}" if created_at_index else "now()"
        sql = (
            f"INSERT INTO tasks ({', '.join(columns)}, updated_at) "
            f"VALUES ({placeholders}, {updated_at}) RETURNING {TASK_COLUMNS}"
        )
        async with self._pool.acquire() as conn:
            try:
                row = await conn.fetchrow(sql, *params)
            except asyncpg.UniqueViolationError as e:
                raise ConflictError(
                    f"Task with external_id '{values.get('external_id')}' already exists",
                    cause=e,
                ) from e
        return _row_to_task(row)

    async def get_task(self, task_id: int) -> Task | None:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = $1", task_id
            )
        return _row_to_task(row) if row else None

    async def find_by_external_id(
        self, external_id: str, source: TaskSource | None = None
    ) -> Task | None:
        sql = (
            f"SELECT {TASK_COLUMNS} FROM tasks "
            "WHERE external_id = $1 AND sync_status <> 'deleted'"
        )
        params: list[Any] = [external_id]
        if source is not None:
            sql += " AND source = $2"
            params.append(_enum_value(source))
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(sql + " ORDER BY id LIMIT 1", *params)
        return _row_to_task(row) if row else None

    async def list_tasks(
        self,
        query: TaskQuery,
        *,
        order: TaskOrder = "priority",
        limit: int | None = None,
    ) -> list[Task]:
        where, params = _where(query)
        sql = f"SELECT {TASK_COLUMNS} FROM tasks WHERE {where} ORDER BY {ORDER_BY[order]}"
        if limit is not None:
            params.append(limit)
            sql += f" LIMIT ${len(params)}"
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)
        return [_row_to_task(row) for row in rows]

    async def count_tasks(self, query: TaskQuery) -> int:
        where, params = _where(query)
        async with self._pool.acquire() as conn:
            return await conn.fetchval(f"SELECT count(*) FROM tasks WHERE {where}", *params)

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> int:
        assignments: list[str] = []
        params: list[Any] = []
        for key, value in changes.items():
            params.append(_enum_value(value))
            if key == "updated_at":
                assignments.append(f"updated_at = GREATEST(updated_at, ${len(params)})")
            else:
                assignments.append(f"{key} = ${len(params)}")
        if not assignments:
            return 0
        params.append(task_id)
        sql = (
            f"UPDATE tasks SET {', '.join(assignments)} "
            f"WHERE id = ${len(params)} AND sync_status <> 'deleted'"
        )
        async with self._pool.acquire() as conn:
            status = await conn.execute(sql, *params)
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return int(status.split()[-1])

    async def append_event(self, event: TaskEvent) -> TaskEvent:
        async with self._pool.acquire() as conn:
            event_id = await conn.fetchval(
                """
                INSERT INTO task_events (task_id, event_type, event_data, timestamp)
                VALUES ($1, $2, $3::jsonb, $4)
                RETURNING id
                """,
                event.task_id,
                event.event_type.value,
                event.event_data,
                event.timestamp,
            )
        return event.model_copy(update={"id": event_id})

    async def list_events(
        self,
        *,
        task_id: int | None = None,
        event_type: TaskEventType | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[TaskEvent]:
        clauses: list[str] = []
        params: list[Any] = []
        if task_id is not None:
            params.append(task_id)
            clauses.append(f"task_id = ${len(params)}")
        if event_type is not None:
            params.append(event_type.value)
            clauses.append(f"event_type = ${len(params)}")
        if since is not None:
            params.append(since)
            clauses.append(f"timestamp >= ${len(params)}")
        sql = "SELECT id, task_id, event_type, event_data, timestamp FROM task_events"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY timestamp DESC, id DESC"
        if limit is not None:
            params.append(limit)
            sql += f" LIMIT ${len(params)}"
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)
        return [
            TaskEvent(
                id=row["id"],
                task_id=row["task_id"],
                event_type=row["event_type"],
                event_data=row["event_data"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    async def append_pattern(self, pattern: UserPattern) -> UserPattern:
        async with self._pool.acquire() as conn:
            pattern_id = await conn.fetchval(
                """
                INSERT INTO user_patterns (pattern_type, pattern_data, confidence_score, last_updated)
                VALUES ($1, $2::jsonb, $3, $4)
                RETURNING id
                """,
                pattern.pattern_type,
                pattern.pattern_data,
                pattern.confidence_score,
                pattern.last_updated,
            )
        return pattern.model_copy(update={"id": pattern_id})

    async def list_patterns(
        self,
        pattern_type: str,
        *,
        since: datetime | None = None,
    ) -> list[UserPattern]:
        sql = (
            "SELECT id, pattern_type, pattern_data, confidence_score, last_updated "
            "FROM user_patterns WHERE pattern_type = $1"
        )
        params: list[Any] = [pattern_type]
        if since is not None:
            sql += " AND last_updated >= $2"
            params.append(since)
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql + " ORDER BY last_updated ASC, id ASC", *params)
        return [
            UserPattern(
                id=row["id"],
                pattern_type=row["pattern_type"],
                pattern_data=row["pattern_data"],
                confidence_score=row["confidence_score"],
                last_updated=row["last_updated"],
            )
            for row in rows
        ]
