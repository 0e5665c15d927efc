"""Dependency injection for API routes.

The service container is built once by the application lifespan and kept
on `app.state`; routes receive the pieces they need through these
dependencies. Tests override `get_container` or hand a prebuilt container
to `create_app`.
"""

from typing import Annotated

from fastapi import Depends, Request

from taskbrain.bootstrap import ServiceContainer
from taskbrain.services import IntelligenceService, TaskService
from taskbrain.sync.pipeline import SyncPipeline


def get_container(request: Request) -> ServiceContainer:
    """Get the service container attached to the running app."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_task_service(container: ContainerDep) -> TaskService:
    return container.tasks


def get_intelligence_service(container: ContainerDep) -> IntelligenceService:
    return container.intelligence


def get_sync_pipeline(container: ContainerDep) -> SyncPipeline:
    return container.pipeline


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
IntelligenceServiceDep = Annotated[IntelligenceService, Depends(get_intelligence_service)]
SyncPipelineDep = Annotated[SyncPipeline, Depends(get_sync_pipeline)]
