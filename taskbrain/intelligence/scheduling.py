"""Greedy daily time-block placement and workload arithmetic.

Tasks are placed first-fit in score order: each task goes to the first
bucket (morning, afternoon, evening) that has room and whose energy floor
it meets; anything left over lands in the buffer. Ties keep the order of
the ranked input, which makes placement deterministic.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date

from taskbrain.intelligence.models import ScoredTask, WorkloadEstimate, WorkloadLevel
from taskbrain.tasks.models import Task

# (bucket, capacity, minimum energy level)
TIME_BLOCKS: tuple[tuple[str, int, int], ...] = (
    ("morning", 3, 4),
    ("afternoon", 4, 3),
    ("evening", 2, 1),
)

DEFAULT_TASK_MINUTES = 60

WORKLOAD_LEVELS: tuple[tuple[int, WorkloadLevel], ...] = (
    (240, "light"),
    (480, "moderate"),
    (600, "heavy"),
)

MORNING_ENERGY_TARGET = 10
EVENING_MINUTES_LIMIT = 120


def task_minutes(task: Task) -> int:
    """Estimated minutes, counting an unset estimate as one hour."""
    return task.estimated_duration or DEFAULT_TASK_MINUTES


def place_tasks(ranked: Sequence[ScoredTask]) -> dict[str, list[ScoredTask]]:
    """Place ranked tasks into morning/afternoon/evening/buffer."""
    buckets: dict[str, list[ScoredTask]] = {name: [] for name, _, _ in TIME_BLOCKS}
    buckets["buffer"] = []
    for scored in ranked:
        for name, capacity, min_energy in TIME_BLOCKS:
            if len(buckets[name]) < capacity and scored.task.energy_level >= min_energy:
                buckets[name].append(scored)
                break
        else:
            buckets["buffer"].append(scored)
    return buckets


def workload_level(total_minutes: int) -> WorkloadLevel:
    for limit, level in WORKLOAD_LEVELS:
        if total_minutes <= limit:
            return level
    return "overloaded"


def estimate_workload(buckets: dict[str, list[ScoredTask]]) -> WorkloadEstimate:
    """Total minutes across the placed (non-buffer) buckets."""
    total = sum(
        task_minutes(scored.task)
        for name, _, _ in TIME_BLOCKS
        for scored in buckets[name]
    )
    return WorkloadEstimate(total_minutes=total, level=workload_level(total))


def energy_optimization(buckets: dict[str, list[ScoredTask]]) -> list[str]:
    tips = []
    morning_energy = sum(scored.task.energy_level for scored in buckets["morning"])
    if morning_energy < MORNING_ENERGY_TARGET:
        tips.append("Morning has spare energy: pull a demanding task forward")
    evening_minutes = sum(task_minutes(scored.task) for scored in buckets["evening"])
    if evening_minutes > EVENING_MINUTES_LIMIT:
        tips.append("Evening is heavy: move work earlier in the day")
    return tips


def day_loads(tasks: Iterable[Task], exclude_id: int | None = None) -> dict[date, int]:
    """Minutes already due on each date, by the date of the due timestamp."""
    loads: dict[date, int] = defaultdict(int)
    for task in tasks:
        if task.id == exclude_id or task.due_date is None:
            continue
        loads[task.due_date.date()] += task_minutes(task)
    return loads
