"""
FastAPI application setup for taskmirror.

Creates the FastAPI app, registers routes, and maps errors to the
``{message, data}`` envelope every response uses.
"""

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskmirror import __version__
from taskmirror.api.routes import tasks, users
from taskmirror.core.config.models import TaskMirrorConfig
from taskmirror.core.exceptions import TaskMirrorError
from taskmirror.core.sync import SyncEngine

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Server errors (5xx)
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def _error_response(
    request: Request, status_code: int, error_code: str, message: str
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "message": message,
            "data": {},
            "error_code": error_code,
            "request_id": str(id(request)),
        },
    )


async def taskmirror_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle domain errors raised by the engine or the store.

    Client errors are logged at INFO, storage failures at ERROR.
    """
    assert isinstance(exc, TaskMirrorError)
    if exc.status_code >= 500:
        logger.error(
            "HTTP %d on %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.message,
            extra={"request_id": id(request)},
        )
    else:
        logger.info(
            "HTTP %d on %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.message,
            extra={"request_id": id(request)},
        )
    return _error_response(request, exc.status_code, exc.error_code, exc.message)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle routing-level HTTP errors (unknown path, wrong method)."""
    assert isinstance(exc, StarletteHTTPException)
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND
    elif exc.status_code < 500:
        error_code = ErrorCode.INVALID_REQUEST
    else:
        error_code = ErrorCode.INTERNAL_ERROR

    logger.info(
        "HTTP %d on %s %s: %s",
        exc.status_code,
        request.method,
        request.url.path,
        exc.detail,
        extra={"request_id": id(request)},
    )
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, error_code.value, detail)


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle request validation errors (e.g. a body that is not a JSON object).

    Reported as 400 like every other validation failure.
    """
    assert isinstance(exc, RequestValidationError)
    logger.warning(
        "Validation error on %s %s: %s",
        request.method,
        request.url.path,
        exc.errors(),
        extra={"request_id": id(request)},
    )

    first_error = exc.errors()[0] if exc.errors() else {}
    field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
    error_msg = first_error.get("msg", "Invalid input")
    message = f"{field}: {error_msg}" if field else error_msg
    return _error_response(
        request, status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR.value, message
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all uncaught exceptions.

    Logs the full traceback but returns a clean message to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        str(exc),
        traceback.format_exc(),
        extra={"request_id": id(request)},
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        "An internal server error occurred",
    )


def create_app(
    config: TaskMirrorConfig | None = None,
    engine: SyncEngine | None = None,
) -> FastAPI:
    """
    Build a FastAPI app.

    Args:
        config: Configuration (defaults to TaskMirrorConfig())
        engine: Pre-built engine; when None the configured store is opened
            lazily on the first request

    Returns:
        Configured FastAPI application
    """
    config = config or TaskMirrorConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        current: SyncEngine | None = getattr(app.state, "engine", None)
        if current is not None:
            current.store.close()

    app = FastAPI(
        title="taskmirror API",
        description="Users and tasks with a consistent assignment mirror",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(users.router, prefix="/api", tags=["users"])
    app.include_router(tasks.router, prefix="/api", tags=["tasks"])

    @app.get("/api")
    async def root() -> dict[str, str]:
        """Root endpoint - API health check."""
        return {"message": "OK", "data": "taskmirror API"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    app.add_exception_handler(TaskMirrorError, taskmirror_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


# Module-level app for `uvicorn taskmirror.api.app:app`
app = create_app()
