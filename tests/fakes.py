"""Test doubles for injected capabilities."""

from datetime import date, datetime, timedelta
from typing import Any

from taskbrain.errors import IntegrationError
from taskbrain.integrations.ports import (
    CalendarEvent,
    CalendarSource,
    TaskProviderClient,
    TimeSlot,
)
from taskbrain.tasks.models import Task
from taskbrain.tasks.stores.inmemory import InMemoryTaskStore


class FakeClock:
    """Settable clock returning timezone-aware datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeCalendar(CalendarSource):
    """Calendar returning preloaded events per date."""

    def __init__(self, events: dict[date, list[CalendarEvent]] | None = None) -> None:
        self.events = events or {}
        self.requested: list[date] = []

    async def get_events_for_date(self, day: date) -> list[CalendarEvent]:
        self.requested.append(day)
        return list(self.events.get(day, []))

    async def find_available_slots(self, day: date, duration_minutes: int) -> list[TimeSlot]:
        return []


class FailingCalendar(CalendarSource):
    """Calendar whose upstream is always down."""

    async def get_events_for_date(self, day: date) -> list[CalendarEvent]:
        raise IntegrationError("google_calendar", ConnectionError("upstream unreachable"))

    async def find_available_slots(self, day: date, duration_minutes: int) -> list[TimeSlot]:
        raise IntegrationError("google_calendar")


class FakeProviderClient(TaskProviderClient):
    """Provider returning a fixed list of items, or raising on demand."""

    def __init__(
        self,
        provider: str,
        items: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._provider = provider
        self.items = items or []
        self.error = error
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return self._provider

    async def fetch_tasks(self) -> list[dict[str, Any]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


class RacingInsertStore(InMemoryTaskStore):
    """Store where another writer inserts the same external id first.

    `concurrent` maps an external id to the fields the other writer
    stores just before our insert runs, so that insert conflicts.
    """

    def __init__(self, concurrent: dict[str, dict[str, Any]]) -> None:
        super().__init__()
        self.concurrent = dict(concurrent)

    async def insert_task(self, values: dict[str, Any]) -> Task:
        winner = self.concurrent.pop(values.get("external_id"), None)
        if winner is not None:
            await super().insert_task({**values, **winner})
        return await super().insert_task(values)
