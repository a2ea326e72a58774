"""FastAPI application for the insulin pump device service.

This is the main entry point for the device API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..api.error_sanitizer import sanitize_error_message
from ..api.exceptions import (
    DatabaseError,
    DeviceServiceError,
    NotFoundError,
    RemoteCallError,
)
from .api.dependencies import (
    close_device_store,
    close_patient_client,
    init_device_store,
    init_patient_client,
)
from .api.health_router import router as health_router
from .api.router import router
from .domain.exceptions import (
    DeviceAlreadyExistsError,
    DeviceNotFoundError,
    DeviceValidationError,
)

load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Insulin Pump Device Service"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Initialize the device store and the patient client
    - Shutdown: Close the patient client and the device store
    """
    # Startup
    logger.info(f"Starting {SERVICE_NAME}...")

    try:
        await init_device_store()
        logger.info("Device store initialized")
    except Exception as e:
        logger.error(f"Failed to initialize device store: {e}")
        raise

    try:
        await init_patient_client()
    except Exception as e:
        logger.warning(f"Failed to initialize patient client: {e}")
        # Don't fail startup - unassigned devices can still be read and written

    yield

    # Shutdown (reverse order of initialization)
    logger.info(f"Shutting down {SERVICE_NAME}...")

    await close_patient_client()

    await close_device_store()
    logger.info("Device store closed")


# Create FastAPI application
app = FastAPI(
    title=SERVICE_NAME,
    description="""
    API for managing insulin pump device records.

    ## Features

    - **Devices**: Create, read, replace and delete pump records
    - **Status**: Move a pump between ACTIVE, INACTIVE and MAINTENANCE
    - **Assignment**: Assign a pump to a patient held by the patient service
    - **Enrichment**: Device views carry the assigned patient when it can be fetched
    """,
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Configure CORS
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

# Include routers
app.include_router(router)
app.include_router(health_router)


# ========== Exception Handlers ==========


def _error(status_code: int, detail: str, code: str, errors: list | None = None) -> JSONResponse:
    content = {"detail": detail, "code": code}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed body, path or query values are a 400 with per-field errors."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return _error(
        status.HTTP_400_BAD_REQUEST,
        "Request validation failed",
        "VALIDATION_ERROR",
        errors,
    )


@app.exception_handler(DeviceValidationError)
async def device_validation_handler(request: Request, exc: DeviceValidationError):
    return _error(
        status.HTTP_400_BAD_REQUEST,
        exc.message,
        exc.code,
        [{"field": e.field, "message": e.message} for e in exc.errors],
    )


@app.exception_handler(DeviceNotFoundError)
async def device_not_found_handler(request: Request, exc: DeviceNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, exc.message, exc.code)


@app.exception_handler(DeviceAlreadyExistsError)
async def device_exists_handler(request: Request, exc: DeviceAlreadyExistsError):
    return _error(status.HTTP_409_CONFLICT, exc.message, exc.code)


@app.exception_handler(NotFoundError)
async def remote_not_found_handler(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, exc.message, exc.code)


@app.exception_handler(RemoteCallError)
async def remote_call_handler(request: Request, exc: RemoteCallError):
    logger.error(f"Patient service call failed: {exc}")
    return _error(
        status.HTTP_502_BAD_GATEWAY,
        sanitize_error_message(exc.message),
        exc.code,
    )


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError):
    logger.error(f"Device store error: {exc}")
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Device store unavailable",
        exc.code,
    )


@app.exception_handler(DeviceServiceError)
async def service_error_handler(request: Request, exc: DeviceServiceError):
    logger.error(f"Unhandled service error: {exc}")
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        sanitize_error_message(exc.message, "Internal server error"),
        exc.code,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Log original error internally, never send it to the client
    logger.error(f"Internal error: {exc}", exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        sanitize_error_message(str(exc), "Internal server error"),
        "INTERNAL_ERROR",
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "health": "/api/health",
    }


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.ipump.devices.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
