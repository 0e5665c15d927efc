"""Input sanitization and validation for task payloads.

Converts loosely-shaped mappings (API bodies, normalized provider events)
into TaskCreate/TaskUpdate/TaskFilters, collecting every field-level
problem into a single ValidationError.
"""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from taskbrain.errors import ValidationError
from taskbrain.tasks.models import MUTABLE_FIELDS, TaskCreate, TaskFilters, TaskUpdate

CONTENT_MAX_LENGTH = 1000
DESCRIPTION_MAX_LENGTH = 5000

_UNSAFE_CHARS = re.compile(r"[<>\"']")
_WHITESPACE = re.compile(r"\s+")

NON_NULLABLE_UPDATE_FIELDS = frozenset({
    "content",
    "priority",
    "completed",
    "energy_level",
    "context_tags",
    "labels",
})


def sanitize_string(value: Any, max_length: int = CONTENT_MAX_LENGTH) -> str | None:
    """Strip markup characters, normalize whitespace and cap length."""
    if not isinstance(value, str):
        return None
    cleaned = _WHITESPACE.sub(" ", _UNSAFE_CHARS.sub("", value.strip())).strip()
    return cleaned[:max_length]


def _sanitize(data: Mapping[str, Any]) -> dict[str, Any]:
    sanitized = dict(data)
    if isinstance(data.get("content"), str):
        sanitized["content"] = sanitize_string(data["content"])
    if isinstance(data.get("description"), str):
        sanitized["description"] = sanitize_string(
            data["description"], DESCRIPTION_MAX_LENGTH
        )
    if isinstance(data.get("project_id"), str):
        sanitized["project_id"] = sanitize_string(data["project_id"])
    for field in ("labels", "context_tags"):
        items = data.get(field)
        if isinstance(items, list) and all(isinstance(item, str) for item in items):
            sanitized[field] = [s for s in (sanitize_string(i) for i in items) if s]
    return sanitized


def _length_errors(data: Mapping[str, Any], *, require_content: bool) -> list[str]:
    errors: list[str] = []
    content = data.get("content")
    if require_content or "content" in data:
        if not isinstance(content, str) or not sanitize_string(content):
            errors.append("Content is required and must be a non-empty string")
        elif len(content) > CONTENT_MAX_LENGTH:
            errors.append(f"Content must be less than {CONTENT_MAX_LENGTH} characters")
    description = data.get("description")
    if isinstance(description, str) and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters")
    return errors


def _messages(exc: PydanticValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return messages


def _build(model: type[BaseModel], data: dict[str, Any], errors: list[str]) -> Any:
    try:
        result = model.model_validate(data)
    except PydanticValidationError as exc:
        errors.extend(_messages(exc))
        result = None
    if errors:
        raise ValidationError(errors)
    return result


def validate_create(data: Mapping[str, Any]) -> TaskCreate:
    """Validate and sanitize a create payload.

    Raises:
        ValidationError: listing every invalid field
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be an object")
    errors = _length_errors(data, require_content=True)
    # Absent and explicit-null are equivalent for optional create fields
    cleaned = {key: value for key, value in _sanitize(data).items() if value is not None}
    return _build(TaskCreate, cleaned, errors)


def validate_update(data: Mapping[str, Any]) -> TaskUpdate:
    """Validate a partial update, dropping keys outside the allow-list.

    Raises:
        ValidationError: listing every invalid field
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be an object")
    allowed = {key: value for key, value in data.items() if key in MUTABLE_FIELDS}
    errors = _length_errors(allowed, require_content=False)
    errors.extend(
        f"{field} cannot be null"
        for field in sorted(NON_NULLABLE_UPDATE_FIELDS)
        if field in allowed and allowed[field] is None
    )
    return _build(TaskUpdate, _sanitize(allowed), errors)


def validate_filters(params: Mapping[str, Any]) -> TaskFilters:
    """Validate listing filters (status, project, priority, due_date bucket)."""
    present = {key: value for key, value in params.items() if value not in (None, "")}
    return _build(TaskFilters, present, [])
