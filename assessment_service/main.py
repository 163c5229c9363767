"""
FastAPI application for Assessment Service.
Wires configuration, logging, storage and the page-style routers together.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessment_service.core.config import config
from assessment_service.core.logging_config import setup_logging
from assessment_service.db.database import db_manager
from assessment_service.db.redis_client import redis_manager
from assessment_service.api.router import router as api_router

logger = logging.getLogger(__name__)

SERVICE_NAME = "Assessment Service"
SERVICE_VERSION = "1.0.0"
SERVICE_DESCRIPTION = "Test slot booking, organization tokens and user profiles"


async def start_storage():
    """Database is required; Redis is optional."""
    await db_manager.initialize()
    await db_manager.create_tables()

    try:
        await redis_manager.initialize()
    except Exception as e:
        logger.warning(f"Redis unavailable, booking locks and telemetry are disabled: {e}")


async def stop_storage():
    for name, close in (("database", db_manager.close), ("redis", redis_manager.close), ("config", config.close)):
        try:
            await close()
        except Exception as e:
            logger.error(f"Error closing {name}: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(await config.get_log_level(), "ASSESSMENT")
    logger.info(f"Starting {SERVICE_NAME}...")

    try:
        await start_storage()
    except Exception as e:
        logger.error(f"Failed to start {SERVICE_NAME}: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started successfully")
    yield

    logger.info(f"Shutting down {SERVICE_NAME}...")
    await stop_storage()


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


def error_envelope(status_code: int, message: str, headers=None) -> JSONResponse:
    """``{success: false, message}`` body shared by every error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.now().isoformat()
        },
        headers=headers
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return error_envelope(exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request data"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    logger.warning(f"{request.method} {request.url.path} -> 422: {message}")
    return error_envelope(422, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_envelope(500, "An internal server error occurred")


app.include_router(api_router)


@app.get("/")
async def root():
    """Service information."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "description": SERVICE_DESCRIPTION,
        "endpoints": {
            "booking": "/Booking/BookSlot/{test_id}",
            "organization": "/Organization/api",
            "profile": "/UserProfile",
            "health": "/health"
        }
    }


@app.get("/health")
async def simple_health_check():
    return {"status": "healthy", "service": "assessment"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "assessment_service.main:app",
        host="0.0.0.0",
        port=8005,
        reload=True,
        log_level="info"
    )
