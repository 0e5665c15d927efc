"""Tests for TaskQuery to SQL translation."""

from datetime import UTC, datetime

from taskbrain.tasks.models import TaskQuery
from taskbrain.tasks.stores.postgres import ORDER_BY, _where


class TestWhere:
    def test_default_hides_deleted(self) -> None:
        assert _where(TaskQuery()) == ("sync_status <> $1", ["deleted"])

    def test_include_deleted_without_filters(self) -> None:
        assert _where(TaskQuery(include_deleted=True)) == ("TRUE", [])

    def test_params_are_numbered_in_order(self) -> None:
        where, params = _where(TaskQuery(completed=False, min_priority=4, depends_on=7))

        assert where == (
            "sync_status <> $1 AND completed = $2 AND priority >= $3 AND $4 = ANY(dependencies)"
        )
        assert params == ["deleted", False, 4, 7]

    def test_due_window(self) -> None:
        start = datetime(2025, 3, 10, tzinfo=UTC)
        end = datetime(2025, 3, 11, tzinfo=UTC)

        where, params = _where(TaskQuery(include_deleted=True, due_from=start, due_before=end))

        assert where == "due_date >= $1 AND due_date < $2"
        assert params == [start, end]


class TestOrderBy:
    def test_nulls_sort_last(self) -> None:
        assert ORDER_BY["priority"].startswith("priority ASC, due_date ASC NULLS LAST")
        assert ORDER_BY["due_date"] == "due_date ASC NULLS LAST, id ASC"
