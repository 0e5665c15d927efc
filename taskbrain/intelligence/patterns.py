"""Completion-pattern aggregation.

Raw "completion_time" rows are appended on every completion; the periodic
pattern update rolls the trailing window up into a "completion_summary"
row. Both shapes reduce to a CompletionProfile.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from taskbrain.intelligence.models import CompletionPatterns
from taskbrain.tasks.models import TaskEvent, UserPattern

COMPLETION_TIME = "completion_time"
COMPLETION_SUMMARY = "completion_summary"

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Actual duration within this fraction of the estimate counts as accurate
ACCURACY_TOLERANCE = 0.25


def _is_accurate(estimated: Any, actual: Any) -> bool | None:
    if not estimated or actual is None:
        return None
    return abs(actual - estimated) <= estimated * ACCURACY_TOLERANCE


@dataclass
class CompletionProfile:
    """Aggregated completion counts by hour and weekday."""

    hour_counts: Counter[int] = field(default_factory=Counter)
    day_counts: Counter[int] = field(default_factory=Counter)
    completions: int = 0
    active_days: int = 0
    estimated: int = 0
    accurate: int = 0

    @classmethod
    def from_events(cls, events: Iterable[TaskEvent]) -> "CompletionProfile":
        """Build from "completed" events in the event log."""
        profile = cls()
        dates = set()
        for event in events:
            profile.hour_counts[event.timestamp.hour] += 1
            profile.day_counts[event.timestamp.weekday()] += 1
            profile.completions += 1
            dates.add(event.timestamp.date())
            accurate = _is_accurate(
                event.event_data.get("estimated_duration"),
                event.event_data.get("actual_duration"),
            )
            if accurate is not None:
                profile.estimated += 1
                profile.accurate += int(accurate)
        profile.active_days = len(dates)
        return profile

    @classmethod
    def from_patterns(cls, patterns: Iterable[UserPattern]) -> "CompletionProfile":
        """Build from raw "completion_time" rows."""
        profile = cls()
        dates = set()
        for pattern in patterns:
            data = pattern.pattern_data
            profile.hour_counts[int(data["hour"])] += 1
            profile.day_counts[int(data["day"])] += 1
            profile.completions += 1
            dates.add(pattern.last_updated.date())
            accurate = _is_accurate(data.get("estimated_duration"), data.get("actual_duration"))
            if accurate is not None:
                profile.estimated += 1
                profile.accurate += int(accurate)
        profile.active_days = len(dates)
        return profile

    @classmethod
    def from_summary(cls, data: Mapping[str, Any]) -> "CompletionProfile":
        """Build from a stored summary; JSON round-trips turn int keys into strings."""
        return cls(
            hour_counts=Counter({int(k): v for k, v in data.get("hour_counts", {}).items()}),
            day_counts=Counter({int(k): v for k, v in data.get("day_counts", {}).items()}),
            completions=data.get("completions", 0),
            active_days=data.get("active_days", 0),
            estimated=data.get("estimated", 0),
            accurate=data.get("accurate", 0),
        )

    def to_summary(self) -> dict[str, Any]:
        return {
            "hour_counts": {str(k): v for k, v in sorted(self.hour_counts.items())},
            "day_counts": {str(k): v for k, v in sorted(self.day_counts.items())},
            "completions": self.completions,
            "active_days": self.active_days,
            "estimated": self.estimated,
            "accurate": self.accurate,
        }

    def top_hours(self, n: int = 3) -> list[int]:
        return [hour for hour, _ in sorted(self.hour_counts.items(), key=lambda i: (-i[1], i[0]))[:n]]

    def top_days(self, n: int = 3) -> list[int]:
        return [day for day, _ in sorted(self.day_counts.items(), key=lambda i: (-i[1], i[0]))[:n]]

    def summary_confidence(self) -> float:
        return min(1.0, self.completions / 20)

    def consistency(self) -> float:
        """Share of completions falling in the three busiest hours."""
        if not self.completions:
            return 0.0
        return sum(self.hour_counts[h] for h in self.top_hours()) / self.completions

    def to_patterns(self) -> CompletionPatterns:
        return CompletionPatterns(
            optimal_hours=self.top_hours(),
            optimal_days=[DAY_NAMES[d] for d in self.top_days()],
            completion_velocity=(
                round(self.completions / self.active_days, 2) if self.active_days else 0.0
            ),
            accuracy_rate=round(self.accurate / self.estimated, 2) if self.estimated else 0.0,
            sample_size=self.completions,
        )
