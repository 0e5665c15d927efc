"""Tests for TaskRepository."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from taskbrain.errors import ConflictError, ValidationError
from taskbrain.tasks.cache import InMemoryTaskCache
from taskbrain.tasks.models import SyncStatus, Task, TaskEventType, TaskSource
from taskbrain.tasks.repository import COMPLETION_TIME, TaskRepository
from taskbrain.tasks.stores.inmemory import InMemoryTaskStore
from tests.fakes import FakeClock


class PausingReadStore(InMemoryTaskStore):
    """Store whose next get_task holds the row it read until released."""

    def __init__(self) -> None:
        super().__init__()
        self.pause_next_read = False
        self.read_done = asyncio.Event()
        self.release = asyncio.Event()

    async def get_task(self, task_id: int) -> Task | None:
        task = await super().get_task(task_id)
        if self.pause_next_read:
            self.pause_next_read = False
            self.read_done.set()
            await self.release.wait()
        return task


class TestCreate:
    """Tests for create."""

    async def test_creates_with_defaults_and_logs_event(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})

        assert task.id == 1
        assert task.priority == 1
        assert task.energy_level == 3
        assert task.completed is False
        assert task.sync_status == SyncStatus.SYNCED
        events = await repository.events(task_id=task.id)
        assert [e.event_type for e in events] == [TaskEventType.CREATED]
        assert events[0].event_data["content"] == "Write report"

    async def test_natural_language_due_date(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Send invoice", "due_date": "tomorrow at 5pm"})
        assert task.due_date == datetime(2025, 3, 11, 17, 0, tzinfo=UTC)

    async def test_unparseable_due_date_is_stored_as_unset(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Someday", "due_date": "when pigs fly"})
        assert task.due_date is None

    async def test_invalid_payload_writes_nothing(
        self, repository: TaskRepository, store: InMemoryTaskStore
    ) -> None:
        with pytest.raises(ValidationError):
            await repository.create({"content": "Bad", "energy_level": 0})

        assert await repository.count_active() == 0
        assert await store.list_events() == []

    async def test_duplicate_external_id_conflicts(self, repository: TaskRepository) -> None:
        payload = {"content": "Mirror", "external_id": "42", "source": TaskSource.TODOIST}
        await repository.create(payload)

        with pytest.raises(ConflictError):
            await repository.create(payload)


class TestGetAndUpdate:
    """Cache-consistent reads after writes."""

    async def test_get_populates_cache(
        self, repository: TaskRepository, cache: InMemoryTaskCache
    ) -> None:
        task = await repository.create({"content": "Write report"})
        cache.clear()

        assert await repository.get(task.id) is not None
        assert task.id in cache

    async def test_no_stale_read_after_update(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report", "priority": 2})
        await repository.get(task.id)

        await repository.update(task.id, {"priority": 5})

        assert (await repository.get(task.id)).priority == 5

    async def test_out_of_range_update_leaves_record_unchanged(
        self, repository: TaskRepository
    ) -> None:
        task = await repository.create({"content": "Write report", "priority": 3, "energy_level": 2})

        with pytest.raises(ValidationError):
            await repository.update(task.id, {"priority": 6})
        with pytest.raises(ValidationError):
            await repository.update(task.id, {"energy_level": 0})

        stored = await repository.get(task.id)
        assert stored.priority == 3
        assert stored.energy_level == 2
        events = await repository.events(TaskEventType.UPDATED, task_id=task.id)
        assert events == []

    async def test_update_ignores_immutable_fields(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})

        updated = await repository.update(
            task.id, {"source": "linear", "external_id": "x", "content": "Write final report"}
        )

        assert updated.content == "Write final report"
        assert updated.source == TaskSource.MANUAL
        assert updated.external_id is None

    async def test_update_logs_changes(self, repository: TaskRepository, clock: FakeClock) -> None:
        task = await repository.create({"content": "Write report"})
        clock.advance(minutes=5)

        updated = await repository.update(task.id, {"priority": 4, "due_date": "2025-03-12"})

        assert updated.updated_at == clock.now
        event = (await repository.events(TaskEventType.UPDATED, task_id=task.id))[0]
        assert event.event_data == {"priority": 4, "due_date": "2025-03-12T00:00:00+00:00"}

    async def test_update_missing_task_returns_none(self, repository: TaskRepository) -> None:
        assert await repository.update(404, {"priority": 2}) is None

    async def test_empty_update_returns_current(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})

        assert (await repository.update(task.id, {"unknown": 1})).id == task.id
        assert await repository.events(TaskEventType.UPDATED) == []

    async def test_derived_fields_follow_the_clock(
        self, repository: TaskRepository, clock: FakeClock
    ) -> None:
        task = await repository.create(
            {"content": "Write report", "due_date": clock.now + timedelta(hours=2)}
        )
        assert task.is_overdue is False

        clock.advance(hours=3)
        assert (await repository.get(task.id)).is_overdue is True

    async def test_read_racing_an_update_does_not_cache_old_row(
        self, cache: InMemoryTaskCache, clock: FakeClock
    ) -> None:
        store = PausingReadStore()
        repository = TaskRepository(store, cache, clock=clock)
        task = await repository.create({"content": "Write report", "priority": 1})
        cache.clear()

        store.pause_next_read = True
        reader = asyncio.create_task(repository.get(task.id))
        await store.read_done.wait()

        await repository.update(task.id, {"priority": 5})
        store.release.set()
        stale = await reader

        assert stale.priority == 1
        assert (await cache.get(task.id)).priority == 5
        assert (await repository.get(task.id)).priority == 5


class TestComplete:
    """Tests for complete."""

    async def test_marks_completed_and_records_pattern(
        self, repository: TaskRepository
    ) -> None:
        task = await repository.create(
            {"content": "Write report", "priority": 4, "estimated_duration": 60}
        )

        completed = await repository.complete(task.id, actual_duration=75)

        assert completed.completed is True
        assert completed.actual_duration == 75
        event = (await repository.events(TaskEventType.COMPLETED, task_id=task.id))[0]
        assert event.event_data == {"actual_duration": 75, "estimated_duration": 60}
        pattern = (await repository.patterns(COMPLETION_TIME))[0]
        assert pattern.pattern_data == {
            "hour": 10,
            "day": 0,
            "priority": 4,
            "estimated_duration": 60,
            "actual_duration": 75,
        }

    async def test_rejects_non_positive_duration(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})

        with pytest.raises(ValidationError):
            await repository.complete(task.id, actual_duration=0)
        assert (await repository.get(task.id)).completed is False

    async def test_missing_task_returns_none(self, repository: TaskRepository) -> None:
        assert await repository.complete(404) is None


class TestDelete:
    """Soft delete keeps history."""

    async def test_soft_delete_keeps_event_history(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})
        await repository.get(task.id)

        assert await repository.delete(task.id) is True

        assert await repository.get(task.id) is None
        assert await repository.list() == []
        events = await repository.events(task_id=task.id)
        assert {e.event_type for e in events} == {TaskEventType.CREATED, TaskEventType.DELETED}

    async def test_delete_twice_reports_missing(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})
        await repository.delete(task.id)

        assert await repository.delete(task.id) is False
        assert await repository.update(task.id, {"priority": 3}) is None

    async def test_deleted_task_is_retained_for_analytics(self, repository: TaskRepository) -> None:
        task = await repository.create({"content": "Write report"})
        await repository.delete(task.id)

        analytics = await repository.productivity_analytics("week")
        assert analytics.total_tasks == 1


class TestList:
    """Filters and due-date buckets."""

    @pytest.fixture
    async def backlog(self, repository: TaskRepository, clock: FakeClock) -> dict[str, int]:
        now = clock.now
        ids = {}
        for name, due, priority, project in [
            ("overdue", now - timedelta(days=1), 2, "ops"),
            ("today", now + timedelta(hours=5), 5, "ops"),
            ("tomorrow", now + timedelta(days=1), 3, "web"),
            ("later", now + timedelta(days=10), 1, "web"),
            ("undated", None, 4, None),
        ]:
            task = await repository.create(
                {"content": name, "due_date": due, "priority": priority, "project_id": project}
            )
            ids[name] = task.id
        return ids

    async def test_default_order_is_priority_ascending(
        self, repository: TaskRepository, backlog: dict[str, int]
    ) -> None:
        listed = await repository.list()
        assert [t.content for t in listed] == ["later", "overdue", "tomorrow", "undated", "today"]

    @pytest.mark.parametrize(
        "bucket,expected",
        [
            ("today", {"today"}),
            ("week", {"today", "tomorrow"}),
            ("overdue", {"overdue"}),
        ],
    )
    async def test_due_buckets(
        self,
        repository: TaskRepository,
        backlog: dict[str, int],
        bucket: str,
        expected: set[str],
    ) -> None:
        listed = await repository.list({"due_date": bucket})
        assert {t.content for t in listed} == expected

    async def test_project_priority_and_status_filters(
        self, repository: TaskRepository, backlog: dict[str, int]
    ) -> None:
        await repository.complete(backlog["tomorrow"])

        assert {t.content for t in await repository.list({"project": "web"})} == {
            "tomorrow",
            "later",
        }
        assert [t.content for t in await repository.list({"priority": 5})] == ["today"]
        assert [t.content for t in await repository.list({"status": "completed"})] == ["tomorrow"]
        assert len(await repository.list({"status": "active"})) == 4

    async def test_counts(self, repository: TaskRepository, backlog: dict[str, int]) -> None:
        assert await repository.count_active() == 5
        assert await repository.count_overdue() == 1
        assert await repository.count_due_today() == 1
        assert await repository.count_high_priority() == 2

    async def test_upcoming_deadlines_are_future_and_sorted(
        self, repository: TaskRepository, backlog: dict[str, int]
    ) -> None:
        upcoming = await repository.upcoming_deadlines(2)
        assert [t.content for t in upcoming] == ["today", "tomorrow"]


class TestActivityAndAnalytics:
    """Aggregate reads."""

    async def test_recent_activity_newest_first_with_content(
        self, repository: TaskRepository, clock: FakeClock
    ) -> None:
        task = await repository.create({"content": "Write report"})
        clock.advance(minutes=1)
        await repository.complete(task.id)

        activity = await repository.recent_activity(10)

        assert [a.event_type for a in activity] == [TaskEventType.COMPLETED, TaskEventType.CREATED]
        assert all(a.content == "Write report" for a in activity)

    async def test_productivity_analytics(self, repository: TaskRepository) -> None:
        ids = [(await repository.create({"content": f"Task {i}"})).id for i in range(4)]
        await repository.complete(ids[0], actual_duration=30)
        await repository.complete(ids[1], actual_duration=60)

        analytics = await repository.productivity_analytics("week")

        assert analytics.period == "week"
        assert analytics.total_tasks == 4
        assert analytics.completed_tasks == 2
        assert analytics.completion_rate == 50.0
        assert analytics.avg_completion_time == 45.0

    async def test_unknown_period_falls_back_to_week(self, repository: TaskRepository) -> None:
        analytics = await repository.productivity_analytics("fortnight")
        assert analytics.period == "week"
        assert analytics.completion_rate == 0.0

    async def test_period_window_excludes_old_tasks(
        self, repository: TaskRepository, clock: FakeClock
    ) -> None:
        await repository.create({"content": "Old"})
        clock.advance(days=2)
        await repository.create({"content": "New"})

        assert (await repository.productivity_analytics("day")).total_tasks == 1
        assert (await repository.productivity_analytics("month")).total_tasks == 2
