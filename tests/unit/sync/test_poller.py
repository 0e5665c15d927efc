"""Tests for the background sync poller."""

import asyncio

from taskbrain.config.models.intelligence import IntelligenceConfig
from taskbrain.config.models.sync import SyncConfig
from taskbrain.errors import IntegrationError
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.sync.notifier import ChangeNotifier
from taskbrain.sync.pipeline import SyncPipeline
from taskbrain.sync.poller import SyncPoller
from taskbrain.tasks.cache import InMemoryTaskCache
from taskbrain.tasks.models import TaskSource
from taskbrain.tasks.repository import TaskRepository
from tests.fakes import FakeCalendar, FakeClock, FakeProviderClient, RacingInsertStore


class TestSyncOnce:
    """One pass over every provider."""

    async def test_upserts_by_external_id(
        self,
        pipeline: SyncPipeline,
        engine: IntelligenceEngine,
        repository: TaskRepository,
    ) -> None:
        todoist = FakeProviderClient(
            "todoist",
            [
                {"id": 1, "content": "Buy milk", "priority": 2},
                {"content": "No id"},
                {"id": 3},
            ],
        )
        linear = FakeProviderClient("linear", [{"id": "lin-1", "title": "Fix bug", "priority": 4}])
        poller = SyncPoller(pipeline, engine, [todoist, linear])

        first = await poller.sync_once()
        todoist.items[0]["content"] = "Buy oat milk"
        second = await poller.sync_once()

        assert first == {"created": 2, "updated": 0, "skipped": 2}
        assert second == {"created": 0, "updated": 2, "skipped": 2}
        task = await repository.find_by_external_id("1", TaskSource.TODOIST)
        assert task.content == "Buy oat milk"
        issue = await repository.find_by_external_id("lin-1", TaskSource.LINEAR)
        assert issue.priority == 5

    async def test_rolls_up_completions(
        self,
        pipeline: SyncPipeline,
        engine: IntelligenceEngine,
        repository: TaskRepository,
    ) -> None:
        task = await repository.create({"content": "Done already"})
        await repository.complete(task.id)

        await SyncPoller(pipeline, engine, []).sync_once()

        assert len(await repository.patterns("completion_summary")) == 1

    async def test_insert_conflict_does_not_abort_the_pass(
        self,
        cache: InMemoryTaskCache,
        clock: FakeClock,
        calendar: FakeCalendar,
        notifier: ChangeNotifier,
        sync_config: SyncConfig,
    ) -> None:
        store = RacingInsertStore({"1": {"content": "From webhook"}})
        repository = TaskRepository(store, cache, clock=clock)
        engine = IntelligenceEngine(repository, calendar, IntelligenceConfig())
        pipeline = SyncPipeline(repository, engine, notifier, sync_config)
        todoist = FakeProviderClient(
            "todoist",
            [{"id": 1, "content": "Buy milk"}, {"id": 2, "content": "Walk dog"}],
        )

        counts = await SyncPoller(pipeline, engine, [todoist]).sync_once()

        assert counts == {"created": 1, "updated": 1, "skipped": 0}
        first = await repository.find_by_external_id("1", TaskSource.TODOIST)
        assert first.content == "Buy milk"
        assert await repository.find_by_external_id("2", TaskSource.TODOIST) is not None


class TestRun:
    async def test_loop_survives_failures_until_stopped(
        self, pipeline: SyncPipeline, engine: IntelligenceEngine
    ) -> None:
        client = FakeProviderClient("todoist", error=IntegrationError("todoist"))
        poller = SyncPoller(pipeline, engine, [client], interval_seconds=0.01)

        poller.start()
        for _ in range(200):
            if client.calls >= 2:
                break
            await asyncio.sleep(0.01)
        await poller.stop()

        assert client.calls >= 2
        assert poller.running is False
