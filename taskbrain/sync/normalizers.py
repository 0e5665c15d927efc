"""Provider payload normalization.

Maps Todoist and Linear webhook payloads onto a provider-neutral
ProviderEvent whose `fields` use internal task field names.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from taskbrain.errors import ValidationError
from taskbrain.tasks.models import TaskSource

SyncAction = Literal["created", "updated", "completed", "deleted"]

TODOIST_ACTIONS: dict[str, SyncAction] = {
    "item:added": "created",
    "item:updated": "updated",
    "item:completed": "completed",
    "item:deleted": "deleted",
}

LINEAR_ACTIONS: dict[str, SyncAction] = {
    "create": "created",
    "update": "updated",
    "remove": "deleted",
}

# Linear 0 (none) .. 4 (urgent) -> task 1 .. 5
LINEAR_PRIORITY = {0: 1, 1: 2, 2: 3, 3: 4, 4: 5}


class ProviderEvent(BaseModel):
    """A provider webhook reduced to what reconciliation needs.

    `action` is None for tags the pipeline does not handle.
    """

    provider: TaskSource
    tag: str
    action: SyncAction | None = None
    external_id: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    assignee_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def todoist_task_fields(item: dict[str, Any]) -> dict[str, Any]:
    """Internal task fields from a Todoist item."""
    due = item.get("due") or {}
    priority = item.get("priority")
    return _drop_none({
        "content": item.get("content"),
        "description": item.get("description") or None,
        "project_id": str(item["project_id"]) if item.get("project_id") else None,
        "priority": min(max(int(priority), 1), 5) if isinstance(priority, int) else None,
        "due_date": due.get("datetime") or due.get("date"),
        "labels": item.get("labels"),
    })


def linear_task_fields(issue: dict[str, Any]) -> dict[str, Any]:
    """Internal task fields from a Linear issue."""
    labels = issue.get("labels")
    if isinstance(labels, dict):
        labels = labels.get("nodes")
    label_names = (
        [label["name"] for label in labels if isinstance(label, dict) and label.get("name")]
        if isinstance(labels, list)
        else None
    )
    team_key = (issue.get("team") or {}).get("key")
    return _drop_none({
        "content": issue.get("title"),
        "description": issue.get("description") or None,
        "priority": LINEAR_PRIORITY.get(issue.get("priority"), 1) if "priority" in issue else None,
        "due_date": issue.get("dueDate"),
        "labels": label_names,
        "context_tags": ["development", team_key] if team_key else ["development"],
    })


def normalize_todoist(payload: dict[str, Any]) -> ProviderEvent:
    tag = str(payload.get("event_name", ""))
    item = payload.get("event_data") or {}
    if not isinstance(item, dict):
        raise ValidationError("event_data must be an object")
    return ProviderEvent(
        provider=TaskSource.TODOIST,
        tag=tag,
        action=TODOIST_ACTIONS.get(tag),
        external_id=str(item["id"]) if item.get("id") is not None else None,
        fields=todoist_task_fields(item),
        raw=item,
    )


def normalize_linear(payload: dict[str, Any]) -> ProviderEvent:
    tag = str(payload.get("action", ""))
    issue = payload.get("data") or {}
    if not isinstance(issue, dict):
        raise ValidationError("data must be an object")

    action = LINEAR_ACTIONS.get(tag)
    state_type = (issue.get("state") or {}).get("type")
    if action == "updated" and state_type == "completed":
        action = "completed"

    return ProviderEvent(
        provider=TaskSource.LINEAR,
        tag=tag,
        action=action,
        external_id=str(issue["id"]) if issue.get("id") is not None else None,
        fields=linear_task_fields(issue),
        assignee_id=(issue.get("assignee") or {}).get("id"),
        raw=issue,
    )


NORMALIZERS = {
    "todoist": normalize_todoist,
    "linear": normalize_linear,
}


def normalize(provider: str, payload: Any) -> ProviderEvent:
    """Normalize a parsed webhook payload.

    Raises:
        ValidationError: If the provider is unknown or the payload is not an object
    """
    normalizer = NORMALIZERS.get(provider)
    if normalizer is None:
        raise ValidationError(f"Unknown provider: {provider}")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook payload must be an object")
    return normalizer(payload)
