"""
FastAPI Application Entry Point.

This is the main application file for the Conduz payroll backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from conduz.app.core.config import settings
from conduz.app.core.logging import configure_logging
from conduz.app.core.observability import ObservabilityMiddleware
from conduz.app.api.v1.router import router as api_v1_router
from conduz.app.db.session import engine, Base
from conduz.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from conduz.app.models.user import User
from conduz.app.models.audit_log import AuditLog
from conduz.app.models.driver import Driver
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.models.financing import Financing
from conduz.app.models.financing_request import FinancingRequest
from conduz.app.models.driver_payment import DriverPayment

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup and disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Weekly payroll reconciliation for Conduz.pt TVDE drivers",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
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
        "message": "Welcome to the Conduz Payroll API",
        "docs": "/docs",
        "health": "/health",
    }
