"""
FastAPI Application Entry Point.

This is the main application file for the Pet Rescue Ledger Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.core.redis_client import ping_redis
from backend.app.db.session import engine, Base, AsyncSessionLocal
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from backend.app.services.accounts import ensure_first_admin

# Import models to ensure they are registered with Base
from backend.app.models.user import User
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.models.idempotency_key import IdempotencyKey

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Bootstraps the first admin when ADMIN_INIT_ENABLED is set.
    """
    configure_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.admin_init_enabled:
        async with AsyncSessionLocal() as session:
            await ensure_first_admin(session, settings.admin_init_phone, settings.admin_init_password)
        logger.info("Admin bootstrap finished")

    yield

    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Donation and expense ledger for a pet rescue organization",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "ok" if await ping_redis() else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Pet rescue accounting backend",
        "docs": "/docs",
        "health": "/health",
    }
