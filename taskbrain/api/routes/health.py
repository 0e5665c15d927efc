"""Health check and metrics endpoints."""

import time
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from redis.exceptions import RedisError

from taskbrain import __version__
from taskbrain.api.dependencies import ContainerDep
from taskbrain.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class ComponentHealth(BaseModel):
    name: str
    status: HealthStatus
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    components: list[ComponentHealth]
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check(container: ContainerDep) -> HealthResponse:
    """Report overall status plus the state of each backend."""
    components = []

    if container.postgres_pool is not None:
        start = time.time()
        healthy = await container.postgres_pool.health_check()
        components.append(
            ComponentHealth(
                name="postgres",
                status="healthy" if healthy else "unhealthy",
                latency_ms=(time.time() - start) * 1000,
            )
        )
    else:
        components.append(ComponentHealth(name="store", status="healthy", message="in-memory"))

    if container.redis_client is not None:
        start = time.time()
        try:
            await container.redis_client.ping()
            components.append(
                ComponentHealth(
                    name="redis", status="healthy", latency_ms=(time.time() - start) * 1000
                )
            )
        except RedisError as e:
            components.append(ComponentHealth(name="redis", status="degraded", message=str(e)))

    components.append(
        ComponentHealth(
            name="sync_poller",
            status="healthy"
            if container.poller.running or not container.settings.sync.poll_enabled
            else "degraded",
        )
    )

    overall: HealthStatus
    if any(c.status == "unhealthy" for c in components):
        overall = "unhealthy"
    elif any(c.status == "degraded" for c in components):
        overall = "degraded"
    else:
        overall = "healthy"

    logger.debug("health_check_completed", status=overall)
    return HealthResponse(
        status=overall,
        version=__version__,
        components=components,
        timestamp=datetime.now(UTC),
    )


@router.get("/metrics")
async def get_metrics() -> Response:
    """Prometheus metrics in text format for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
