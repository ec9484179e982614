# pyright: reportMissingTypeStubs=false
"""
Practice Portal Backend API

A FastAPI application serving the medical-practice portal: accounts,
practices and staff, invitations and join requests, doctor availability,
notifications and physician matching.

Features:
- Email/password authentication with JWT access and refresh tokens
- PostgreSQL database with SQLAlchemy ORM
- Realtime WebSocket streams fed by committed database changes
"""

import logging
from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import (
    auth, practices, invitations, patient_invitations, join_requests, doctors, notifications, matching,
    realtime, system,
)
from core import config
from core.constants import CORS_ORIGINS
from services.invitation_expiry_scheduler import (
    start_invitation_expiry_scheduler, stop_invitation_expiry_scheduler,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Practice Portal API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Practice Portal Backend API")

    # Note: Database sessions are created fresh for each sweep
    if config.INVITATION_SWEEP_ENABLED:
        try:
            await start_invitation_expiry_scheduler()
            logger.info("✅ Invitation expiry scheduler started")
        except Exception as e:
            logger.exception(f"❌ Failed to start invitation expiry scheduler: {e}")

    yield

    if config.INVITATION_SWEEP_ENABLED:
        try:
            await stop_invitation_expiry_scheduler()
            logger.info("🛑 Invitation expiry scheduler stopped")
        except Exception as e:
            logger.exception(f"❌ Error stopping invitation expiry scheduler: {e}")

    logger.info("🛑 Shutting down Practice Portal Backend API")


# Create FastAPI application
app = FastAPI(
    title="Practice Portal Backend",
    description="Medical practice portal for patients, doctors and practice staff",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

COMMON_RESPONSES = {
    401: {"description": "Unauthorized"},
    403: {"description": "Forbidden"},
    404: {"description": "Resource not found"},
    500: {"description": "Internal server error"},
}

# Include API routers
app.include_router(
    auth.router,
    prefix="/api/auth",
    tags=["authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    practices.router,
    prefix="/api/practices",
    tags=["practices"],
    responses=COMMON_RESPONSES,
)
app.include_router(
    invitations.router,
    prefix="/api",
    tags=["invitations"],
    responses={**COMMON_RESPONSES, 409: {"description": "Conflict"}, 410: {"description": "Gone"}},
)
app.include_router(
    patient_invitations.router,
    prefix="/api",
    tags=["patient-invitations"],
    responses={**COMMON_RESPONSES, 409: {"description": "Conflict"}, 410: {"description": "Gone"}},
)
app.include_router(
    join_requests.router,
    prefix="/api",
    tags=["join-requests"],
    responses={**COMMON_RESPONSES, 409: {"description": "Conflict"}},
)
app.include_router(
    doctors.router,
    prefix="/api",
    tags=["doctors"],
    responses=COMMON_RESPONSES,
)
app.include_router(
    notifications.router,
    prefix="/api",
    tags=["notifications"],
    responses=COMMON_RESPONSES,
)
app.include_router(
    matching.router,
    prefix="/api",
    tags=["matching"],
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        500: {"description": "Upstream model failure"},
    },
)
app.include_router(
    realtime.router,
    prefix="/api",
    tags=["realtime"],
)
app.include_router(
    system.router,
    prefix="/api/system",
    tags=["system"],
    responses=COMMON_RESPONSES,
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Practice Portal Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies and parameters as 400."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    logger.info(f"Request validation failed on {request.url.path}: {location} {message}")
    return JSONResponse(
        status_code=400,
        content={"detail": f"{location}: {message}" if location else message, "type": "validation_error"},
    )


@app.exception_handler(httpx.HTTPStatusError)
async def http_status_error_handler(request: Request, exc: httpx.HTTPStatusError):
    """Handle HTTP status errors from external services."""
    logger.exception(f"External service error: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": "External service error", "type": "external_service_error"},
    )
