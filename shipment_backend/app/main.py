"""
FastAPI Application Entry Point.

This is the main application file for the Shipment Tracker Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from shipment_backend.app.core.config import settings
from shipment_backend.app.api.v1.router import router as api_v1_router
from shipment_backend.app.core.observability import ObservabilityMiddleware
from shipment_backend.app.core.redis_client import close_redis, ping_redis
from shipment_backend.app.db.session import Datastore
from shipment_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    datastore_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from shipment_backend.app.models.user import User
from shipment_backend.app.models.shipment import Shipment
from shipment_backend.app.models.audit_log import AuditLog

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Opens the datastore and creates missing tables.
    2. Disposes of the engine and closes Redis on shutdown.
    """
    datastore = Datastore.from_settings()
    await datastore.create_all()
    app.state.datastore = datastore
    logger.info("Datastore ready")
    try:
        yield
    finally:
        await datastore.dispose()
        await close_redis()
        logger.info("Datastore closed")


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Shipment tracking backend for customers, dealers and administrators",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
# Starlette base class so routing 404/405 share the envelope
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, datastore_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Stored shipment images
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint, also used by the mobile client to pick a server.
    
    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "connected" if await ping_redis() else "unavailable",
    }


# Include API router
app.include_router(api_v1_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Shipment Tracker Backend API",
        "docs": "/docs",
        "health": "/health",
    }
