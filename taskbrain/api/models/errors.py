"""Error response models for consistent API error handling."""

from pydantic import BaseModel

from taskbrain.errors import ErrorCode


class ErrorDetail(BaseModel):
    """Field-level error information for validation failures."""

    field: str | None = None
    """The field that caused the error, if applicable."""

    message: str
    """Human-readable error description."""


class ErrorBody(BaseModel):
    """Error body content for API error responses."""

    code: ErrorCode
    """Machine-readable error code."""

    message: str
    """Human-readable error message."""

    details: list[ErrorDetail] | None = None
    """Additional error details for validation failures."""

    correlation_id: str | None = None
    """Set only for unexpected internal errors; matches the server log entry."""


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "NOT_FOUND",
                "message": "Task with id '42' not found"
            }
        }
    """

    error: ErrorBody
