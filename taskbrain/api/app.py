"""FastAPI application factory.

Creates the application, wires the service container into `app.state`
through the lifespan, registers exception handlers and routes.
"""

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from taskbrain import __version__
from taskbrain.api.models.errors import ErrorBody, ErrorDetail, ErrorResponse
from taskbrain.api.routes import register_routes
from taskbrain.bootstrap import ServiceContainer, build_container
from taskbrain.config.settings import Settings
from taskbrain.errors import (
    ConflictError,
    ErrorCode,
    IntegrationError,
    RateLimitError,
    TaskBrainError,
    ValidationError,
)
from taskbrain.observability.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    container: ServiceContainer | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        container: Prebuilt service container. When omitted, one is built
            from settings on startup and closed on shutdown.
        settings: Settings used to build the container

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if container is not None:
            yield
            return

        built = await build_container(settings)
        app.state.container = built
        await built.start_background()
        try:
            yield
        finally:
            await built.close()

    app = FastAPI(
        title="TaskBrain API",
        description="Task repository, prioritization and provider sync",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.middleware("http")(_bind_request_id)
    _register_exception_handlers(app)
    register_routes(app)

    logger.info("app_created", prebuilt_container=container is not None)
    return app


async def _bind_request_id(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a per-request id into the structlog context."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("request_id")
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _error_response(
    status_code: int,
    body: ErrorBody,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=body).model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("validation_failed", errors=exc.errors, path=request.url.path)
        return _error_response(
            exc.status_code,
            ErrorBody(
                code=exc.error_code,
                message=exc.message,
                details=[ErrorDetail(message=message) for message in exc.errors],
            ),
        )

    @app.exception_handler(IntegrationError)
    async def integration_error_handler(request: Request, exc: IntegrationError) -> JSONResponse:
        logger.error(
            "integration_error",
            integration=exc.integration_name,
            error=str(exc.original_error) if exc.original_error else exc.message,
            path=request.url.path,
        )
        return _error_response(
            exc.status_code,
            ErrorBody(code=exc.error_code, message="Service temporarily unavailable"),
        )

    @app.exception_handler(RateLimitError)
    async def rate_limit_error_handler(request: Request, exc: RateLimitError) -> JSONResponse:
        logger.warning("rate_limited", retry_after=exc.retry_after, path=request.url.path)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
        return _error_response(
            exc.status_code,
            ErrorBody(code=exc.error_code, message=exc.message),
            headers=headers,
        )

    @app.exception_handler(TaskBrainError)
    async def taskbrain_error_handler(request: Request, exc: TaskBrainError) -> JSONResponse:
        """Handle the remaining domain errors with their own code and message."""
        logger.warning(
            "api_error",
            error_code=exc.error_code.value,
            message=exc.message,
            path=request.url.path,
        )
        return _error_response(
            exc.status_code,
            ErrorBody(code=exc.error_code, message=exc.message),
        )

    @app.exception_handler(ConflictError)
    async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
        logger.warning("conflict", error=str(exc), path=request.url.path)
        return _error_response(
            409,
            ErrorBody(code=ErrorCode.CONFLICT, message=str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle FastAPI request validation errors."""
        logger.info("request_validation_failed", errors=exc.errors(), path=request.url.path)
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400,
            ErrorBody(
                code=ErrorCode.VALIDATION_ERROR,
                message="Request validation failed",
                details=details,
            ),
        )

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_error_handler(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors raised below the routes."""
        logger.info("data_validation_failed", errors=exc.errors(), path=request.url.path)
        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400,
            ErrorBody(
                code=ErrorCode.VALIDATION_ERROR,
                message="Data validation failed",
                details=details,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unexpected errors under a correlation id and return only the id."""
        correlation_id = getattr(request.state, "request_id", None) or uuid.uuid4().hex
        logger.exception(
            "unexpected_error",
            correlation_id=correlation_id,
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return _error_response(
            500,
            ErrorBody(
                code=ErrorCode.INTERNAL_ERROR,
                message="An unexpected error occurred",
                correlation_id=correlation_id,
            ),
        )

    logger.debug("exception_handlers_registered")
