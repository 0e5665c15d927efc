"""Capability interfaces for external providers.

Concrete Todoist, Linear and calendar adapters live outside the core and
implement these interfaces.
"""

from taskbrain.integrations.ports import (
    CalendarEvent,
    CalendarSource,
    NullCalendarSource,
    TaskProviderClient,
    TimeSlot,
)

__all__ = [
    "CalendarEvent",
    "CalendarSource",
    "NullCalendarSource",
    "TaskProviderClient",
    "TimeSlot",
]
