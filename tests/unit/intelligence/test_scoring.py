"""Tests for priority scoring."""

from datetime import UTC, datetime, timedelta

import pytest

from taskbrain.intelligence.scoring import (
    ScoringContext,
    due_urgency,
    energy_band,
    energy_match,
    score_task,
    time_of_day_band,
)
from taskbrain.tasks.models import Task

# Monday 10:00
NOW = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)


def make_task(task_id: int = 1, **overrides) -> Task:
    values = {"id": task_id, "content": f"Task {task_id}", "priority": 3}
    values.update(overrides)
    return Task(**values)


class TestDueUrgency:
    """Calendar-day urgency tiers."""

    @pytest.mark.parametrize(
        "due,expected",
        [
            (None, 0),
            (NOW - timedelta(minutes=1), 25),
            (NOW + timedelta(hours=8), 20),
            (NOW + timedelta(days=1), 15),
            (NOW + timedelta(days=2), 15),
            (NOW + timedelta(days=5), 10),
            (NOW + timedelta(days=7), 10),
            (NOW + timedelta(days=8), 0),
        ],
    )
    def test_tiers(self, due: datetime | None, expected: int) -> None:
        assert due_urgency(make_task(due_date=due), NOW) == expected


class TestEnergyMatch:
    @pytest.mark.parametrize(
        "energy,hour,expected",
        [
            (5, 9, 15),
            (4, 11, 15),
            (3, 9, 0),
            (3, 14, 10),
            (4, 14, 0),
            (2, 20, 8),
            (1, 22, 8),
            (1, 23, 0),
            (3, 20, 0),
        ],
    )
    def test_matches(self, energy: int, hour: int, expected: int) -> None:
        assert energy_match(energy, hour) == expected


class TestScoreTask:
    """Weighted sum."""

    def test_base_score_is_priority_times_five(self) -> None:
        assert score_task(make_task(priority=3, energy_level=3), NOW, ScoringContext()) == 15

    def test_all_components(self) -> None:
        task = make_task(1, priority=4, energy_level=5, project_id="web", due_date=NOW + timedelta(hours=3))
        others = [make_task(i, project_id="web", dependencies=[1]) for i in range(2, 6)]
        context = ScoringContext.from_tasks([task, *others])

        # 20 priority + 20 today + 15 morning energy + 4 siblings + min(12, 10) fan-in
        assert score_task(task, NOW, context) == 69

    def test_project_crowding_is_capped(self) -> None:
        tasks = [make_task(i, project_id="big") for i in range(1, 20)]
        context = ScoringContext.from_tasks(tasks)
        assert score_task(tasks[0], NOW, context) == 15 + 10

    def test_score_is_not_clamped(self) -> None:
        task = make_task(1, priority=5, energy_level=5, project_id="p", due_date=NOW - timedelta(days=3))
        others = [make_task(i, project_id="p", dependencies=[1]) for i in range(2, 20)]
        assert score_task(task, NOW, ScoringContext.from_tasks([task, *others])) == 25 + 25 + 15 + 10 + 10

    @pytest.mark.parametrize("later_days", [1, 3, 6, 9, 30])
    def test_sooner_due_date_never_scores_lower(self, later_days: int) -> None:
        context = ScoringContext()
        for sooner in [NOW - timedelta(days=2), NOW + timedelta(hours=1), NOW + timedelta(days=1)]:
            later = sooner + timedelta(days=later_days)
            assert score_task(make_task(due_date=sooner), NOW, context) >= score_task(
                make_task(due_date=later), NOW, context
            )

    def test_undated_task_never_outscores_dated_twin(self) -> None:
        context = ScoringContext()
        dated = make_task(due_date=NOW + timedelta(days=30))
        assert score_task(dated, NOW, context) >= score_task(make_task(), NOW, context)


class TestBands:
    def test_energy_band(self) -> None:
        assert list(energy_band(7)) == [4, 5]
        assert list(energy_band(12)) == [3, 4]
        assert list(energy_band(15)) == [2, 3]
        assert list(energy_band(21)) == [1, 2]

    def test_time_of_day_band(self) -> None:
        assert list(time_of_day_band(10)) == [4, 5]
        assert list(time_of_day_band(13)) == [2, 3]
        assert list(time_of_day_band(2)) == [1, 2]
