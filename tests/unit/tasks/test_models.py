"""Tests for task models and derived fields."""

from datetime import UTC, datetime, timedelta

from taskbrain.tasks.models import SyncStatus, Task, TaskView

NOW = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)


def make_task(**overrides) -> Task:
    values = {"id": 1, "content": "Write report", "priority": 3}
    values.update(overrides)
    return Task(**values)


class TestTaskView:
    """Derived fields computed at read time."""

    def test_no_due_date(self) -> None:
        view = TaskView.from_task(make_task(), NOW)

        assert view.is_overdue is False
        assert view.days_until_due is None
        assert view.urgency_score == 3

    def test_overdue_task(self) -> None:
        view = TaskView.from_task(make_task(due_date=NOW - timedelta(days=2)), NOW)

        assert view.is_overdue is True
        assert view.days_until_due == -2
        assert view.urgency_score == 13

    def test_completed_task_is_never_overdue(self) -> None:
        view = TaskView.from_task(
            make_task(due_date=NOW - timedelta(days=2), completed=True), NOW
        )
        assert view.is_overdue is False

    def test_due_within_a_day(self) -> None:
        view = TaskView.from_task(make_task(due_date=NOW + timedelta(hours=6)), NOW)
        assert view.urgency_score == 8
        assert view.days_until_due == 0

    def test_due_within_three_days(self) -> None:
        view = TaskView.from_task(make_task(due_date=NOW + timedelta(days=2)), NOW)
        assert view.urgency_score == 6
        assert view.days_until_due == 2

    def test_to_task_strips_derived_fields(self) -> None:
        view = TaskView.from_task(make_task(due_date=NOW), NOW)
        assert "urgency_score" not in view.to_task().model_dump()


class TestTask:
    def test_tag_lists_have_set_semantics(self) -> None:
        task = make_task(labels=["work", "home", "work"], dependencies=[3, 2, 3])

        assert task.labels == ["work", "home"]
        assert task.dependencies == [3, 2]

    def test_deleted_task_is_not_active(self) -> None:
        assert make_task().is_active
        assert not make_task(sync_status=SyncStatus.DELETED).is_active
        assert not make_task(completed=True).is_active
