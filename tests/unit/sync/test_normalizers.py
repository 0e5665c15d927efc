"""Tests for provider payload normalization."""

import pytest

from taskbrain.errors import ValidationError
from taskbrain.sync.normalizers import (
    linear_task_fields,
    normalize,
    todoist_task_fields,
)
from taskbrain.tasks.models import TaskSource


class TestTodoist:
    def test_item_fields(self) -> None:
        fields = todoist_task_fields({
            "id": "123",
            "content": "Buy milk",
            "description": "",
            "project_id": 2203306141,
            "priority": 4,
            "due": {"date": "2025-03-12", "datetime": "2025-03-12T17:00:00Z"},
            "labels": ["errand"],
        })

        assert fields == {
            "content": "Buy milk",
            "project_id": "2203306141",
            "priority": 4,
            "due_date": "2025-03-12T17:00:00Z",
            "labels": ["errand"],
        }

    def test_priority_is_clamped(self) -> None:
        assert todoist_task_fields({"priority": 9})["priority"] == 5
        assert todoist_task_fields({"priority": 0})["priority"] == 1

    def test_all_day_due_date(self) -> None:
        assert todoist_task_fields({"due": {"date": "2025-03-12"}})["due_date"] == "2025-03-12"

    @pytest.mark.parametrize(
        "tag,action",
        [
            ("item:added", "created"),
            ("item:updated", "updated"),
            ("item:completed", "completed"),
            ("item:deleted", "deleted"),
            ("note:added", None),
        ],
    )
    def test_actions(self, tag: str, action: str | None) -> None:
        event = normalize("todoist", {"event_name": tag, "event_data": {"id": 7}})

        assert event.provider == TaskSource.TODOIST
        assert event.action == action
        assert event.external_id == "7"

    def test_non_object_event_data(self) -> None:
        with pytest.raises(ValidationError):
            normalize("todoist", {"event_name": "item:added", "event_data": [1, 2]})


class TestLinear:
    def test_issue_fields(self) -> None:
        fields = linear_task_fields({
            "id": "lin-1",
            "title": "Fix login bug",
            "priority": 1,
            "dueDate": "2025-03-14",
            "labels": {"nodes": [{"name": "bug"}, {"id": "x"}]},
            "team": {"key": "ENG"},
        })

        assert fields == {
            "content": "Fix login bug",
            "priority": 2,
            "due_date": "2025-03-14",
            "labels": ["bug"],
            "context_tags": ["development", "ENG"],
        }

    @pytest.mark.parametrize("linear,expected", [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (None, 1)])
    def test_priority_mapping(self, linear: int | None, expected: int) -> None:
        assert linear_task_fields({"priority": linear})["priority"] == expected

    def test_missing_priority_is_not_sent(self) -> None:
        assert "priority" not in linear_task_fields({"title": "x"})

    def test_completed_state_becomes_completion(self) -> None:
        event = normalize(
            "linear",
            {"action": "update", "data": {"id": "lin-1", "state": {"type": "completed"}}},
        )
        assert event.action == "completed"

    def test_assignee(self) -> None:
        event = normalize(
            "linear",
            {"action": "create", "data": {"id": "lin-2", "assignee": {"id": "user-1"}}},
        )
        assert event.action == "created"
        assert event.assignee_id == "user-1"


class TestNormalize:
    def test_unknown_provider(self) -> None:
        with pytest.raises(ValidationError, match="Unknown provider"):
            normalize("asana", {})

    def test_payload_must_be_an_object(self) -> None:
        with pytest.raises(ValidationError):
            normalize("todoist", ["item:added"])
