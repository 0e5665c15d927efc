"""API route registration."""

from fastapi import FastAPI

from taskbrain.observability.logging import get_logger

logger = get_logger(__name__)


def register_routes(app: FastAPI) -> None:
    """Register all routers with the FastAPI application."""
    from taskbrain.api.routes.analytics import router as analytics_router
    from taskbrain.api.routes.context import router as context_router
    from taskbrain.api.routes.health import router as health_router
    from taskbrain.api.routes.intelligence import router as intelligence_router
    from taskbrain.api.routes.tasks import router as tasks_router
    from taskbrain.api.routes.webhooks import router as webhooks_router

    app.include_router(tasks_router, tags=["Tasks"])
    app.include_router(intelligence_router, tags=["Intelligence"])
    app.include_router(context_router, tags=["Context"])
    app.include_router(analytics_router, tags=["Analytics"])
    app.include_router(webhooks_router, tags=["Webhooks"])
    app.include_router(health_router, tags=["Health"])

    logger.info("routes_registered")
