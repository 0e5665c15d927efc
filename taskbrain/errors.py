"""Error hierarchy for consistent error handling.

All domain exceptions inherit from TaskBrainError, which provides
status_code and error_code attributes used by the API exception
handlers to generate consistent error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error kinds returned to callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    FORBIDDEN = "FORBIDDEN"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TaskBrainError(Exception):
    """Base exception for all domain errors.

    Subclasses set status_code and error_code to define the HTTP response.
    """

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(TaskBrainError):
    """Raised when input is malformed or out of range.

    Carries one or more field-level messages.
    """

    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = errors if isinstance(errors, list) else [errors]
        super().__init__(", ".join(self.errors))


class NotFoundError(TaskBrainError):
    """Raised when a resource lookup fails."""

    status_code = 404
    error_code = ErrorCode.NOT_FOUND

    def __init__(self, resource_type: str, id: object) -> None:
        self.resource_type = resource_type
        self.id = id
        super().__init__(f"{resource_type} with id '{id}' not found")


class AuthenticationError(TaskBrainError):
    """Raised when credentials are missing or invalid."""

    status_code = 401
    error_code = ErrorCode.AUTHENTICATION_FAILED

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AuthorizationError(TaskBrainError):
    """Raised when the caller lacks permission."""

    status_code = 403
    error_code = ErrorCode.FORBIDDEN

    def __init__(
        self, message: str = "You are not authorized to perform this action"
    ) -> None:
        super().__init__(message)


class IntegrationError(TaskBrainError):
    """Raised when an upstream provider fails.

    The message is for logs only; callers get a generic
    "service unavailable" response.
    """

    status_code = 503
    error_code = ErrorCode.SERVICE_UNAVAILABLE

    def __init__(
        self, integration_name: str, original_error: Exception | None = None
    ) -> None:
        self.integration_name = integration_name
        self.original_error = original_error
        message = f"Error communicating with {integration_name}"
        if original_error is not None:
            message += f": {original_error}"
        super().__init__(message)


class WebhookVerificationError(TaskBrainError):
    """Raised when an inbound webhook signature does not verify."""

    status_code = 401
    error_code = ErrorCode.INVALID_SIGNATURE

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"Invalid webhook signature from {service}")


class RateLimitError(TaskBrainError):
    """Raised when a caller or upstream exceeds its rate limit."""

    status_code = 429
    error_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        message = "Rate limit exceeded"
        if retry_after is not None:
            message += f". Retry after {retry_after} seconds"
        super().__init__(message)


class ConfigurationError(TaskBrainError):
    """Raised when a required secret or setting is missing."""

    status_code = 500
    error_code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(f"Configuration error: {message}")


class StoreError(Exception):
    """Base exception for storage backend failures.

    Store implementations wrap backend-specific errors in a StoreError
    subclass so callers never see driver exceptions.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class StoreConnectionError(StoreError):
    """Raised when a storage backend is unreachable."""


class ConflictError(StoreError):
    """Raised on a unique constraint violation."""
