"""Task CRUD endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Response

from taskbrain.api.dependencies import TaskServiceDep
from taskbrain.api.models.requests import CompleteRequest
from taskbrain.services import BulkCreateItem, CreatedTask
from taskbrain.tasks.models import TaskView

router = APIRouter(prefix="/api/tasks")


@router.get("", response_model=list[TaskView])
async def list_tasks(
    service: TaskServiceDep,
    status: str | None = None,
    project: str | None = None,
    priority: int | None = None,
    due_date: str | None = None,
) -> list[TaskView]:
    """List tasks, optionally filtered by status, project, priority or due bucket."""
    return await service.list_tasks(
        {"status": status, "project": project, "priority": priority, "due_date": due_date}
    )


@router.post("", response_model=CreatedTask, status_code=201)
async def create_task(
    service: TaskServiceDep,
    fields: dict[str, Any] = Body(...),
) -> CreatedTask:
    """Create a task and apply any high-confidence analysis suggestions."""
    return await service.create_task_with_intelligence(fields)


@router.post("/bulk", response_model=list[BulkCreateItem])
async def bulk_create_tasks(
    service: TaskServiceDep,
    items: list[dict[str, Any]] = Body(...),
) -> list[BulkCreateItem]:
    return await service.bulk_create(items)


@router.get("/{task_id}", response_model=TaskView)
async def get_task(task_id: int, service: TaskServiceDep) -> TaskView:
    return await service.get_task(task_id)


@router.put("/{task_id}", response_model=TaskView)
async def update_task(
    task_id: int,
    service: TaskServiceDep,
    fields: dict[str, Any] = Body(...),
) -> TaskView:
    """Partially update a task. Only mutable fields are accepted."""
    return await service.update_task(task_id, fields)


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: int, service: TaskServiceDep) -> Response:
    """Soft-delete a task. Its event history is kept."""
    await service.delete_task(task_id)
    return Response(status_code=204)


@router.post("/{task_id}/complete", response_model=TaskView)
async def complete_task(
    task_id: int,
    service: TaskServiceDep,
    request: CompleteRequest | None = None,
) -> TaskView:
    actual_duration = request.actual_duration if request else None
    return await service.complete_task(task_id, actual_duration)
