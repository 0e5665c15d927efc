"""Priority scoring.

score = priority x 5
      + due-date urgency (overdue 25, today 20, within 2 days 15, within 7 days 10)
      + energy/time-of-day match (morning 15, afternoon 10, evening 8)
      + project crowding (active siblings, capped at 10)
      + dependency fan-in (3 per dependent, capped at 10)

The sum is not clamped.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from taskbrain.tasks.models import Task

MORNING_HOURS = range(6, 12)
AFTERNOON_HOURS = range(12, 18)
EVENING_HOURS = range(18, 23)

PROJECT_CROWDING_CAP = 10
FAN_IN_CAP = 10
FAN_IN_WEIGHT = 3


@dataclass(frozen=True)
class ScoringContext:
    """Backlog-wide counts needed to score a single task."""

    project_counts: Mapping[str, int] = field(default_factory=dict)
    fan_in: Mapping[int, int] = field(default_factory=dict)

    @classmethod
    def from_tasks(cls, active: Iterable[Task]) -> "ScoringContext":
        """Build counts from the active backlog."""
        projects: Counter[str] = Counter()
        fan_in: Counter[int] = Counter()
        for task in active:
            if task.project_id:
                projects[task.project_id] += 1
            fan_in.update(task.dependencies)
        return cls(project_counts=projects, fan_in=fan_in)


def due_urgency(task: Task, now: datetime) -> int:
    """Urgency points from the due date, using calendar-day distance."""
    if task.due_date is None:
        return 0
    if task.due_date < now:
        return 25
    days = (task.due_date.date() - now.date()).days
    if days == 0:
        return 20
    if days <= 2:
        return 15
    if days <= 7:
        return 10
    return 0


def energy_match(energy_level: int, hour: int) -> int:
    """Bonus when a task's energy demand suits the time of day."""
    if hour in MORNING_HOURS and energy_level >= 4:
        return 15
    if hour in AFTERNOON_HOURS and energy_level == 3:
        return 10
    if hour in EVENING_HOURS and energy_level <= 2:
        return 8
    return 0


def score_task(task: Task, now: datetime, context: ScoringContext) -> int:
    """Score a task as of `now`."""
    siblings = 0
    if task.project_id:
        siblings = context.project_counts.get(task.project_id, 0)
        if task.is_active:
            siblings = max(siblings - 1, 0)

    dependents = context.fan_in.get(task.id, 0)

    return (
        task.priority * 5
        + due_urgency(task, now)
        + energy_match(task.energy_level, now.hour)
        + min(siblings, PROJECT_CROWDING_CAP)
        + min(FAN_IN_WEIGHT * dependents, FAN_IN_CAP)
    )


def energy_band(hour: int) -> range:
    """Energy levels that suit a given hour."""
    if 6 <= hour <= 9:
        return range(4, 6)
    if 10 <= hour <= 13:
        return range(3, 5)
    if 14 <= hour <= 17:
        return range(2, 4)
    return range(1, 3)


def time_of_day_band(hour: int) -> range:
    """Coarser energy band used for the context-based view."""
    if hour in MORNING_HOURS:
        return range(4, 6)
    if hour in AFTERNOON_HOURS:
        return range(2, 4)
    return range(1, 3)
