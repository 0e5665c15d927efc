"""Intelligence endpoints: priorities, schedule, overdue, reschedule."""

from typing import Any

from fastapi import APIRouter, Body

from taskbrain.api.dependencies import IntelligenceServiceDep
from taskbrain.api.models.requests import RescheduleRequest
from taskbrain.intelligence.models import (
    BatchRescheduleItem,
    DailySchedule,
    OverdueAnalysis,
    PrioritySuggestions,
    Recommendations,
    RescheduleResult,
    TaskImpact,
)

router = APIRouter(prefix="/api/intelligence")


@router.get("/priorities", response_model=PrioritySuggestions)
async def get_priorities(service: IntelligenceServiceDep) -> PrioritySuggestions:
    return await service.priorities()


@router.get("/schedule", response_model=DailySchedule)
async def get_schedule(
    service: IntelligenceServiceDep,
    date: str | None = None,
) -> DailySchedule:
    """Daily schedule for `date` (ISO or natural language), today when omitted."""
    return await service.daily_schedule(date)


@router.get("/overdue", response_model=OverdueAnalysis)
async def get_overdue(service: IntelligenceServiceDep) -> OverdueAnalysis:
    return await service.overdue()


@router.post("/reschedule", response_model=RescheduleResult)
async def reschedule(
    request: RescheduleRequest,
    service: IntelligenceServiceDep,
) -> RescheduleResult:
    """Evaluate moving a task to a new date; applied only when conflict-free."""
    return await service.reschedule(request.task_id, request.new_date)


@router.post("/reschedule/batch", response_model=list[BatchRescheduleItem])
async def reschedule_batch(
    service: IntelligenceServiceDep,
    requests: list[dict[str, Any]] = Body(...),
) -> list[BatchRescheduleItem]:
    return await service.reschedule_batch(requests)


@router.get("/tasks/{task_id}/impact", response_model=TaskImpact)
async def get_task_impact(task_id: int, service: IntelligenceServiceDep) -> TaskImpact:
    return await service.task_impact(task_id)


@router.get("/recommendations", response_model=Recommendations)
async def get_recommendations(
    service: IntelligenceServiceDep,
    kind: str = "general",
) -> Recommendations:
    return await service.recommendations(kind)
