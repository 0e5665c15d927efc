"""Reschedule impact scoring and capacity search.

impact = 0.5 * slack_factor + 0.35 * load_factor + 0.15 * priority_factor

slack_factor    = clamp(days from today to the new date / 7, 0, 1)
load_factor     = 1 - clamp(minutes already due that day / day capacity, 0, 1)
priority_factor = 1 - (priority - 1) / 8

More slack and a lighter day both raise the score; pushing out a
high-priority task lowers it slightly.
"""

from collections.abc import Mapping
from datetime import date, timedelta

SLACK_HORIZON_DAYS = 7
SEARCH_DAYS = 14


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def impact_score(
    today: date,
    new_date: date,
    existing_minutes: int,
    day_capacity: int,
    priority: int,
) -> float:
    slack_factor = _clamp((new_date - today).days / SLACK_HORIZON_DAYS)
    load_factor = 1 - _clamp(existing_minutes / day_capacity)
    priority_factor = 1 - (priority - 1) / 8
    return round(0.5 * slack_factor + 0.35 * load_factor + 0.15 * priority_factor, 3)


def fits(loads: Mapping[date, int], day: date, minutes: int, day_capacity: int) -> bool:
    return loads.get(day, 0) + minutes <= day_capacity


def find_open_days(
    loads: Mapping[date, int],
    start: date,
    minutes: int,
    day_capacity: int,
    limit: int,
) -> list[date]:
    """Up to `limit` dates from `start` onwards that can absorb `minutes`."""
    found: list[date] = []
    for offset in range(SEARCH_DAYS):
        if len(found) >= limit:
            break
        day = start + timedelta(days=offset)
        if fits(loads, day, minutes, day_capacity):
            found.append(day)
    return found
