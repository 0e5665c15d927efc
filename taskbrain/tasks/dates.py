"""Due-date parsing.

Accepts ISO-8601 strings and a small set of natural-language relative
expressions ("tomorrow", "next friday", "in 3 days", "oct 20 at 5pm").
All results are timezone-aware UTC datetimes.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

WEEKDAYS = {
    "mon": 0, "monday": 0,
    "tue": 1, "tues": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}

MONTHS = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}

# Natural expressions without an explicit time land at noon
DEFAULT_TIME = time(12, 0)

_WEEKDAY_RE = "|".join(sorted(WEEKDAYS, key=len, reverse=True))
_MONTH_RE = "|".join(sorted(MONTHS, key=len, reverse=True))
_TIME = re.compile(r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b|\bat\s+(\d{1,2}):(\d{2})\b")
_IN_N = re.compile(r"\bin\s+(\d+)\s+(day|days|week|weeks)\b")
_NEXT_WEEKDAY = re.compile(rf"\b(?:next|this|on)?\s*({_WEEKDAY_RE})\b")
_MONTH_DAY = re.compile(rf"\b({_MONTH_RE})\s+(\d{{1,2}})(?:st|nd|rd|th)?(?:,?\s*(\d{{4}}))?\b")


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _next_weekday(start: date, weekday: int) -> date:
    days_ahead = (weekday - start.weekday()) % 7
    return start + timedelta(days=days_ahead or 7)


def _parse_time(text: str) -> time | None:
    match = _TIME.search(text)
    if not match:
        return None
    if match.group(4) is not None:
        hour, minute = int(match.group(4)), int(match.group(5))
    else:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3)
        if meridiem == "pm" and hour < 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _parse_natural_date(text: str, today: date) -> date | None:
    if "today" in text or "tonight" in text:
        return today
    if "tomorrow" in text:
        return today + timedelta(days=1)
    if "yesterday" in text:
        return today - timedelta(days=1)
    if "next week" in text:
        return today + timedelta(days=7)

    match = _IN_N.search(text)
    if match:
        amount = int(match.group(1))
        unit_days = 7 if match.group(2).startswith("week") else 1
        return today + timedelta(days=amount * unit_days)

    match = _MONTH_DAY.search(text)
    if match:
        month = MONTHS[match.group(1)]
        day = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else today.year
        try:
            candidate = date(year, month, day)
        except ValueError:
            return None
        if match.group(3) is None and candidate < today:
            candidate = date(year + 1, month, day)
        return candidate

    match = _NEXT_WEEKDAY.search(text)
    if match:
        return _next_weekday(today, WEEKDAYS[match.group(1)])

    return None


def parse_natural(text: str, now: datetime) -> datetime | None:
    """Parse a natural-language due expression relative to `now`."""
    lowered = text.lower().strip()
    day = _parse_natural_date(lowered, now.date())
    if day is None:
        return None
    at = _parse_time(lowered)
    if at is None:
        at = time(20, 0) if "tonight" in lowered else DEFAULT_TIME
    return datetime.combine(day, at, tzinfo=UTC)


def parse_due_date(value: Any, now: datetime) -> datetime | None:
    """Parse a due date from a datetime, date, ISO-8601 or natural-language string.

    Returns None for empty input.

    Raises:
        ValueError: If a non-empty value cannot be interpreted
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(0, 0), tzinfo=UTC)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported due date type: {type(value).__name__}")

    text = value.strip()
    if not text:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        pass

    parsed = parse_natural(text, now)
    if parsed is None:
        raise ValueError(f"Unrecognized due date: {value!r}")
    return parsed


def parse_date(value: Any, now: datetime) -> date:
    """Parse a calendar date for scheduling operations.

    Raises:
        ValueError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    parsed = parse_due_date(value, now)
    if parsed is None:
        raise ValueError("Date is required")
    return parsed.date()
