"""Consumed capabilities: calendar availability and task provider clients."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class CalendarEvent(BaseModel):
    """A calendar entry on a given day."""

    id: str
    summary: str = ""
    start_time: datetime
    end_time: datetime
    location: str | None = None
    attendees: list[str] = Field(default_factory=list)
    busy: bool = True


class TimeSlot(BaseModel):
    """A free window in the calendar."""

    start: datetime
    end: datetime
    duration_minutes: int


class CalendarSource(ABC):
    """Calendar availability capability.

    Implementations raise IntegrationError when the upstream calendar
    cannot be reached.
    """

    @abstractmethod
    async def get_events_for_date(self, day: date) -> list[CalendarEvent]:
        """Return events scheduled on a date."""
        pass

    @abstractmethod
    async def find_available_slots(self, day: date, duration_minutes: int) -> list[TimeSlot]:
        """Return free slots on a date at least duration_minutes long."""
        pass


class NullCalendarSource(CalendarSource):
    """Calendar used when no provider is configured: always empty."""

    async def get_events_for_date(self, day: date) -> list[CalendarEvent]:
        return []

    async def find_available_slots(self, day: date, duration_minutes: int) -> list[TimeSlot]:
        return []


class TaskProviderClient(ABC):
    """External task provider capability used by the background poller.

    Returned items are the provider's own structured payloads; the sync
    normalizers map them onto task fields.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name ("todoist" or "linear")."""
        pass

    @abstractmethod
    async def fetch_tasks(self) -> list[dict[str, Any]]:
        """Fetch the provider's current open tasks.

        Raises:
            IntegrationError: If the provider cannot be reached
        """
        pass
