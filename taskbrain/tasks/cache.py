"""Task snapshot cache.

Entries hold only persisted fields. The repository is the sole owner of
the cache and the store remains the source of truth: a miss always falls
back to durable storage.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta

from redis.asyncio import Redis

from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import CACHE_LOOKUPS
from taskbrain.tasks.models import Task, utc_now

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600  # 1 hour


class TaskCache(ABC):
    """Abstract interface for the task snapshot cache."""

    @abstractmethod
    async def get(self, task_id: int) -> Task | None:
        """Return the cached snapshot, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, task: Task) -> None:
        """Store a snapshot with the configured TTL."""
        pass

    @abstractmethod
    async def invalidate(self, task_id: int) -> None:
        """Drop any snapshot for a task."""
        pass


class RedisTaskCache(TaskCache):
    """Redis-backed task cache.

    Key format: {prefix}:{task_id}
    Value format: JSON dump of the persisted Task fields
    """

    def __init__(
        self,
        redis: Redis,
        key_prefix: str = "task",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        """Initialize Redis task cache.

        Args:
            redis: Redis client instance
            key_prefix: Prefix for Redis keys
            ttl_seconds: Expiry applied to every entry
        """
        self._redis = redis
        self._key_prefix = key_prefix
        self._ttl = ttl_seconds

    def _make_key(self, task_id: int) -> str:
        return f"{self._key_prefix}:{task_id}"

    async def get(self, task_id: int) -> Task | None:
        value = await self._redis.get(self._make_key(task_id))
        if value is None:
            CACHE_LOOKUPS.labels(result="miss").inc()
            return None

        value_str = value.decode() if isinstance(value, bytes) else value
        try:
            task = Task.model_validate(json.loads(value_str))
        except (json.JSONDecodeError, ValueError):
            # Corrupted value, treat as a miss
            logger.warning("task_cache_corrupted_value", task_id=task_id)
            await self.invalidate(task_id)
            CACHE_LOOKUPS.labels(result="miss").inc()
            return None

        CACHE_LOOKUPS.labels(result="hit").inc()
        return task

    async def set(self, task: Task) -> None:
        await self._redis.setex(
            self._make_key(task.id),
            self._ttl,
            json.dumps(task.model_dump(mode="json")),
        )

    async def invalidate(self, task_id: int) -> None:
        await self._redis.delete(self._make_key(task_id))


class InMemoryTaskCache(TaskCache):
    """In-memory task cache for testing and development.

    Expiry is evaluated lazily against the injected clock.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._entries: dict[int, tuple[str, datetime]] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def get(self, task_id: int) -> Task | None:
        entry = self._entries.get(task_id)
        if entry is None or entry[1] <= self._clock():
            self._entries.pop(task_id, None)
            CACHE_LOOKUPS.labels(result="miss").inc()
            return None
        CACHE_LOOKUPS.labels(result="hit").inc()
        return Task.model_validate_json(entry[0])

    async def set(self, task: Task) -> None:
        self._entries[task.id] = (task.model_dump_json(), self._clock() + self._ttl)

    async def invalidate(self, task_id: int) -> None:
        self._entries.pop(task_id, None)

    def clear(self) -> None:
        """Clear all cache entries (test utility)."""
        self._entries.clear()

    def __contains__(self, task_id: int) -> bool:
        return task_id in self._entries
