#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Operator-facing HTTP surface of the quota guard: breaker status, cache
maintenance, live presence and admission checks.

Author: Senior Solution Architect
Date: 2025-12-05
"""

import math
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.application.api.routes.admin import router as admin_router
from src.application.api.routes.admission import router as admission_router
from src.application.api.routes.health import router as health_router
from src.application.api.routes.presence import router as presence_router
from src.application.services.guard_services import GuardServices
from src.core.config.constants import HEADER_SESSION_ID
from src.core.config.settings import get_settings
from src.core.exceptions import (
    CircuitOpenError,
    OperationTimeoutError,
    QuotaGuardError,
    SystemBusyError,
)
from src.core.logging.logger import clear_session_id, get_logger, set_session_id, setup_logging

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Quota Guard",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
        realtime_backend=settings.presence.REALTIME_BACKEND,
    )

    services = getattr(app.state, "services", None) or GuardServices.from_settings(settings)
    app.state.services = services

    try:
        await services.start()
        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")
        await services.stop()
        logger.info("Application shutdown complete")


# ============================================================================
# Middleware
# ============================================================================


async def session_id_middleware(request: Request, call_next):
    """
    Inject session ID into all requests for correlation.
    """
    session_id = request.headers.get(HEADER_SESSION_ID) or str(uuid.uuid4())
    set_session_id(session_id)

    try:
        response = await call_next(request)
        response.headers[HEADER_SESSION_ID] = session_id
        return response
    finally:
        clear_session_id()


# ============================================================================
# Exception Handlers
# ============================================================================


async def quota_guard_exception_handler(request: Request, exc: QuotaGuardError):
    """Map guard exceptions to HTTP responses."""
    headers = {}
    if isinstance(exc, CircuitOpenError):
        status_code = 503
        headers["Retry-After"] = str(math.ceil(exc.remaining_cooldown))
    elif isinstance(exc, SystemBusyError):
        status_code = 503
    elif isinstance(exc, OperationTimeoutError):
        status_code = 504
    else:
        status_code = 500

    logger.error(
        f"Guard exception: {exc.message}", error_type=type(exc).__name__, status_code=status_code
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


# ============================================================================
# Application Factory
# ============================================================================


def create_app(services: GuardServices | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Pre-built container (tests); built from settings otherwise

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Client-side read quota and admission guard",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    if services is not None:
        app.state.services = services

    app.middleware("http")(session_id_middleware)
    app.add_exception_handler(QuotaGuardError, quota_guard_exception_handler)

    app.include_router(health_router)
    app.include_router(admin_router)
    app.include_router(presence_router)
    app.include_router(admission_router)

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint with API information.
        """
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": "/health",
        }

    return app
