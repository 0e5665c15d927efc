"""Context bundle endpoints for planning assistants."""

from typing import Any

from fastapi import APIRouter

from taskbrain.api.dependencies import IntelligenceServiceDep
from taskbrain.services import FullContext

router = APIRouter(prefix="/api/context")


@router.get("", response_model=FullContext)
async def get_full_context(service: IntelligenceServiceDep) -> FullContext:
    return await service.full_context()


@router.get("/{day}")
async def get_context_for_date(day: str, service: IntelligenceServiceDep) -> dict[str, Any]:
    return await service.context_for_date(day)
