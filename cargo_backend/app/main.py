"""
FastAPI Application Entry Point.

This is the main application file for the Cargo Routing Backend.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from cargo_backend.app.core.config import settings
from cargo_backend.app.api.v1.router import router as api_v1_router
from cargo_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from cargo_backend.app.db.session import engine, Base
from cargo_backend.app.core.redis_client import get_redis, ping_redis, redis_client
from cargo_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from cargo_backend.app.models.audit_log import AuditLog
from cargo_backend.app.models.deposit import Deposit
from cargo_backend.app.models.tariff import Tariff, TariffBand
from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.route import Route
from cargo_backend.app.models.leg import Leg
from cargo_backend.app.models.dlq import DeadLetterQueue


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Disposes the engine and closes Redis on shutdown.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()
    await redis_client.aclose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Route planning, pricing and leg tracking for cargo shipments",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(redis=Depends(get_redis)):
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "redis": "up" if await ping_redis(redis) else "down",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Cargo Routing Backend API",
        "docs": "/docs",
        "health": "/health",
    }
