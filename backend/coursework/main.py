"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursework.api.v1.api import api_router
from coursework.core.config import settings
from coursework.core.db_error_handling import DatabaseOperationError
from coursework.core.error_responses import ErrorMessages
from coursework.core.logging_config import setup_logging
from coursework.middleware import RequestLoggingMiddleware
from coursework.observability import error_tracker

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes error tracking
    - On shutdown: flushes pending Sentry events
    """
    error_tracker.init()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENV})")

    yield

    if error_tracker.is_initialized:
        import sentry_sdk

        sentry_sdk.flush(timeout=2.0)
    logger.info("Application shutting down")


# OpenAPI tags metadata
tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring application status",
    },
    {
        "name": "submissions",
        "description": (
            "Attempt lifecycle: start, record answers, finalize, manual review "
            "and deletion of test submissions"
        ),
    },
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**Coursework Assessment API** - submission and scoring engine for "
            "course tests.\n\n"
            "Students open an attempt, record answers question by question and "
            "finalize. Choice and text questions are graded automatically on "
            "finalize; essays and coding tasks wait for a teacher's grade."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # Configure Request Logging
    app.add_middleware(RequestLoggingMiddleware)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Exception handlers for error tracking
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions; server errors are also sent to Sentry.
        """
        if exc.status_code >= 500:
            error_tracker.capture_error(
                exc,
                context={
                    "path": str(request.url.path),
                    "method": request.method,
                    "status_code": exc.status_code,
                },
                tags={"error_type": "HTTPException"},
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors.
        """
        # Convert errors to serializable format
        errors = []
        for error in exc.errors():
            errors.append(
                {
                    "loc": list(error.get("loc", [])),
                    "msg": str(error.get("msg", "")),
                    "type": str(error.get("type", "")),
                }
            )

        logger.warning(
            f"Request validation failed: {errors}",
            extra={"method": request.method, "path": str(request.url.path)},
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions and track them.

        Generates a unique error_id (UUID) for each exception so a support
        request can be matched to the logged stack trace.
        """
        error_id = str(uuid.uuid4())

        if isinstance(exc, DatabaseOperationError):
            log_message = (
                f"Database operation '{exc.operation_name}' failed "
                f"[error_id={error_id}]: {exc.original_error}"
            )
        else:
            log_message = f"Unhandled exception [error_id={error_id}]: {exc}"
        logger.exception(log_message, extra={"error_id": error_id})

        error_tracker.capture_error(
            exc,
            context={
                "path": str(request.url.path),
                "method": request.method,
                "error_id": error_id,
            },
            tags={"error_type": exc.__class__.__name__},
        )

        # Return error response with tracking ID (don't leak internal details)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": ErrorMessages.INTERNAL_ERROR,
                "error_id": error_id,
            },
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
