"""Intelligence engine thresholds."""

from pydantic import BaseModel, Field


class IntelligenceConfig(BaseModel):
    """Constants for scheduling, rescheduling and auto-apply decisions."""

    day_capacity_minutes: int = Field(
        default=480,  # 8 hours
        gt=0,
        description="Workload a single day can absorb before a reschedule conflicts",
    )
    reschedule_auto_apply_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Impact score above which a conflict-free reschedule is applied",
    )
    analysis_auto_apply_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Mean sub-analysis confidence above which suggestions are applied",
    )
    max_alternatives: int = Field(default=3, ge=0, le=14, description="Alternative dates offered")
    schedule_horizon_days: int = Field(
        default=3,
        ge=0,
        description="Tasks due within this many days are eligible for a daily schedule",
    )
    pattern_window_days: int = Field(
        default=30,
        gt=0,
        description="Trailing window scanned by pattern updates",
    )
