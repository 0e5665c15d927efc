"""Service container built once at process start.

Every long-lived collaborator (store, cache, repository, engine, notifier,
pipeline, poller) is constructed here and passed explicitly to whoever
needs it; nothing below this module reaches for a global.

Example usage:

    from taskbrain.bootstrap import build_container

    container = await build_container()
    task = await container.tasks.create_task({"content": "Write report"})
    ...
    await container.close()
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

import httpx
import redis.asyncio as redis

from taskbrain.config import get_settings
from taskbrain.config.settings import Settings
from taskbrain.db.pool import PostgresPool
from taskbrain.integrations.ports import CalendarSource, NullCalendarSource, TaskProviderClient
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.observability.logging import get_logger, setup_logging
from taskbrain.services import IntelligenceService, TaskService
from taskbrain.sync.notifier import ChangeNotifier
from taskbrain.sync.pipeline import SyncPipeline
from taskbrain.sync.poller import SyncPoller
from taskbrain.tasks.cache import InMemoryTaskCache, RedisTaskCache, TaskCache
from taskbrain.tasks.models import utc_now
from taskbrain.tasks.repository import TaskRepository
from taskbrain.tasks.store import TaskStore
from taskbrain.tasks.stores.inmemory import InMemoryTaskStore
from taskbrain.tasks.stores.postgres import PostgresTaskStore

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Explicitly wired application services."""

    settings: Settings
    store: TaskStore
    cache: TaskCache
    repository: TaskRepository
    engine: IntelligenceEngine
    notifier: ChangeNotifier
    pipeline: SyncPipeline
    poller: SyncPoller
    tasks: TaskService
    intelligence: IntelligenceService
    postgres_pool: PostgresPool | None = None
    redis_client: redis.Redis | None = None
    _closed: bool = field(default=False, repr=False)

    async def start_background(self) -> None:
        """Start the provider poller when enabled."""
        if self.settings.sync.poll_enabled:
            self.poller.start()

    async def close(self) -> None:
        """Stop background work and release connections."""
        if self._closed:
            return
        self._closed = True
        if self.poller.running:
            await self.poller.stop()
        await self.notifier.shutdown()
        if self.redis_client is not None:
            await self.redis_client.aclose()
        if self.postgres_pool is not None:
            await self.postgres_pool.close()
        logger.info("container_closed")


async def build_container(
    settings: Settings | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
    calendar: CalendarSource | None = None,
    provider_clients: Sequence[TaskProviderClient] = (),
    store: TaskStore | None = None,
    cache: TaskCache | None = None,
    http_client: httpx.AsyncClient | None = None,
    configure_logging: bool = True,
) -> ServiceContainer:
    """Build the service container from settings.

    Explicit `store`/`cache` arguments take precedence over the configured
    backends, which lets tests wire in-memory doubles.
    """
    settings = settings or get_settings()
    if configure_logging:
        obs = settings.observability
        setup_logging(level=obs.log_level, format=obs.log_format, redact_pii=obs.redact_pii)

    postgres_pool: PostgresPool | None = None
    if store is None:
        if settings.storage.backend == "postgres":
            postgres_pool = PostgresPool(settings.storage.postgres)
            await postgres_pool.connect()
            postgres_store = PostgresTaskStore(postgres_pool)
            await postgres_store.ensure_schema()
            store = postgres_store
        else:
            store = InMemoryTaskStore()

    redis_client: redis.Redis | None = None
    cache_config = settings.storage.cache
    if cache is None:
        if cache_config.backend == "redis":
            redis_client = redis.from_url(cache_config.redis_url, decode_responses=True)
            cache = RedisTaskCache(
                redis_client,
                key_prefix=cache_config.key_prefix,
                ttl_seconds=cache_config.ttl_seconds,
            )
        else:
            cache = InMemoryTaskCache(ttl_seconds=cache_config.ttl_seconds, clock=clock)

    calendar = calendar or NullCalendarSource()
    repository = TaskRepository(store, cache, clock=clock)
    engine = IntelligenceEngine(repository, calendar, settings.intelligence)
    notifier = ChangeNotifier(settings.notifications, client=http_client, clock=clock)
    pipeline = SyncPipeline(repository, engine, notifier, settings.sync)
    poller = SyncPoller(
        pipeline,
        engine,
        provider_clients,
        interval_seconds=settings.sync.poll_interval_seconds,
    )

    logger.info(
        "container_built",
        store_backend=type(store).__name__,
        cache_backend=type(cache).__name__,
        notifications_enabled=notifier.enabled,
        providers=[client.provider_name for client in provider_clients],
    )
    return ServiceContainer(
        settings=settings,
        store=store,
        cache=cache,
        repository=repository,
        engine=engine,
        notifier=notifier,
        pipeline=pipeline,
        poller=poller,
        tasks=TaskService(repository, engine),
        intelligence=IntelligenceService(repository, engine, calendar),
        postgres_pool=postgres_pool,
        redis_client=redis_client,
    )
