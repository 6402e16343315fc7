"""
Application factory for FastAPI.

This module provides a factory function for creating FastAPI application instances.
The factory pattern allows for:
- Easy testing with custom settings
- Multiple app instances with different configurations
- Clear separation of app creation from route definitions

Usage:
    from backend.main import create_app
    from backend.settings import Settings

    # Default app (uses get_settings())
    app = create_app()

    # Test app with custom settings
    test_settings = Settings(environment="test", _env_file=None)
    test_app = create_app(settings=test_settings)
"""

import logging
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.errors import (
    AuthenticationRequired,
    ExternalCallFailure,
    GymFlowError,
    InvalidAttendanceStatus,
    NotFoundError,
)
from backend.observability import configure_observability, shutdown_observability
from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Most specific first; GymFlowError catches the rest
_ERROR_STATUS = (
    (NotFoundError, 404),
    (AuthenticationRequired, 401),
    (InvalidAttendanceStatus, 422),
    (ExternalCallFailure, 502),
)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, uses get_settings()
                  which loads from environment variables.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    _configure_logging(settings)

    # Initialize Sentry for error tracking
    _init_sentry(settings)

    # Initialize OpenTelemetry before the app so FastAPI is instrumented
    configure_observability(settings)

    app = FastAPI(
        title="GymFlow Classes API",
        description="Class availability, booking actions and recommendations",
        version="1.0.0",
    )

    # Store settings on app state for middleware access
    app.state.settings = settings

    _configure_cors(app, settings)
    _register_error_handlers(app)
    _include_routers(app)
    _register_shutdown(app)

    return app


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            release=settings.render_git_commit,
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
        )
        logger.info(
            "Sentry initialized for classes-api (release=%s)",
            settings.render_git_commit or "unknown",
        )


def _configure_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware for the application."""
    origins = settings.allowed_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def status_for(error: GymFlowError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


def _register_error_handlers(app: FastAPI) -> None:
    """Map domain errors to HTTP responses carrying the user-facing message."""

    @app.exception_handler(GymFlowError)
    async def gymflow_error_handler(request: Request, exc: GymFlowError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": exc.message})


def _register_shutdown(app: FastAPI) -> None:
    """Register graceful shutdown handler."""

    @app.on_event("shutdown")
    async def shutdown_event():
        shutdown_observability()
        logger.info("classes-api shutdown complete")


def _include_routers(app: FastAPI) -> None:
    """Include all API routers in the application."""
    from api.routers import health_router, classes_router, bookings_router

    # Health router (no prefix - /health at root)
    app.include_router(health_router)

    # Classes router (/api/classes/*)
    app.include_router(classes_router)

    # Bookings router (/api/bookings/*, /api/sessions/*, /api/trainer/*)
    app.include_router(bookings_router)


# Default app instance for uvicorn
# This allows: uvicorn backend.main:app --reload
app = create_app()
