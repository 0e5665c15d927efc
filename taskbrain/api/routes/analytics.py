"""Analytics endpoints."""

from fastapi import APIRouter

from taskbrain.api.dependencies import IntelligenceServiceDep, TaskServiceDep
from taskbrain.intelligence.models import CompletionPatterns
from taskbrain.services import StatusSummary
from taskbrain.tasks.models import ProductivityAnalytics

router = APIRouter(prefix="/api/analytics")


@router.get("/productivity", response_model=ProductivityAnalytics)
async def get_productivity(
    service: TaskServiceDep,
    period: str = "week",
) -> ProductivityAnalytics:
    """Completion statistics for `day`, `week` or `month`."""
    return await service.productivity_analytics(period)


@router.get("/patterns", response_model=CompletionPatterns)
async def get_patterns(service: IntelligenceServiceDep) -> CompletionPatterns:
    return await service.completion_patterns()


@router.get("/summary", response_model=StatusSummary)
async def get_summary(service: TaskServiceDep) -> StatusSummary:
    return await service.status_summary()
