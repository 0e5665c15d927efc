"""Request bodies that are not plain task field maps."""

from typing import Any

from pydantic import BaseModel, Field


class CompleteRequest(BaseModel):
    actual_duration: int | None = Field(default=None, description="Minutes actually spent")


class RescheduleRequest(BaseModel):
    task_id: int
    new_date: Any = Field(description="ISO date or natural-language date")
