"""Periodic background sync.

Every poll interval the poller pulls open tasks from each configured
provider, upserts them by external id, and rolls completions into a fresh
pattern summary. A failing iteration is logged and the loop carries on;
the next interval is the only retry.
"""

import asyncio
from collections.abc import Sequence

from taskbrain.errors import ValidationError
from taskbrain.integrations.ports import TaskProviderClient
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import SYNC_RUNS
from taskbrain.sync.normalizers import linear_task_fields, todoist_task_fields
from taskbrain.sync.pipeline import SyncPipeline
from taskbrain.tasks.models import TaskSource

logger = get_logger(__name__)

FIELD_MAPPERS = {
    TaskSource.TODOIST: todoist_task_fields,
    TaskSource.LINEAR: linear_task_fields,
}


class SyncPoller:
    """Background loop that polls providers until stopped."""

    def __init__(
        self,
        pipeline: SyncPipeline,
        engine: IntelligenceEngine,
        clients: Sequence[TaskProviderClient],
        interval_seconds: float = 300.0,
    ) -> None:
        self._pipeline = pipeline
        self._engine = engine
        self._clients = list(clients)
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sync_once(self) -> dict[str, int]:
        """Run one poll over every client. Returns upsert counts."""
        counts = {"created": 0, "updated": 0, "skipped": 0}
        for client in self._clients:
            source = TaskSource(client.provider_name)
            mapper = FIELD_MAPPERS[source]
            for item in await client.fetch_tasks():
                external_id = item.get("id")
                if external_id is None:
                    counts["skipped"] += 1
                    continue
                try:
                    result = await self._pipeline.upsert(source, str(external_id), mapper(item))
                except ValidationError as e:
                    logger.warning(
                        "sync_item_invalid",
                        provider=source.value,
                        external_id=str(external_id),
                        errors=e.errors,
                    )
                    counts["skipped"] += 1
                    continue
                counts[result] += 1

        await self._engine.update_patterns()
        logger.info("sync_completed", **counts)
        return counts

    async def run(self) -> None:
        """Loop until stop() is called."""
        logger.info("sync_poller_started", interval_seconds=self._interval)
        while not self._stop.is_set():
            try:
                await self.sync_once()
                SYNC_RUNS.labels(outcome="success").inc()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                SYNC_RUNS.labels(outcome="error").inc()
                logger.error(
                    "sync_iteration_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except TimeoutError:
                pass
        logger.info("sync_poller_stopped")

    def start(self) -> asyncio.Task[None]:
        self._stop.clear()
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Signal the loop to exit and wait for the current iteration."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None
