"""
Main FastAPI application for EWM Service.
Handles application startup, middleware, error mapping and routing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import time

from ewm.core.config import config
from ewm.core.exceptions import EwmError
from ewm.core.logging import setup_logging
from ewm.db.database import db_manager
from ewm.db.redis_client import redis_manager
from ewm.api.v1.router import router as api_router

setup_logging(level="INFO", service_name="ewm")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting EWM Service...")

    try:
        await db_manager.initialize()
        logger.info("Database manager initialized")

        consistency_config = await config.get_consistency_config()
        if consistency_config["enable_distributed_locks"]:
            await redis_manager.initialize()
            logger.info("Redis manager initialized")

        try:
            db_manager.create_tables()
        except Exception as e:
            logger.warning(f"Database tables may already exist: {e}")

        logger.info("EWM Service started successfully")

    except Exception as e:
        logger.error(f"Failed to start EWM Service: {e}")
        raise

    yield

    logger.info("Shutting down EWM Service...")

    try:
        await db_manager.close()
        await redis_manager.close()
        await config.close()
        logger.info("EWM Service shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


app = FastAPI(
    title="EWM Service",
    description="Event publication and participation request management",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
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
    """Add request processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


def _error_body(status_code: int, message, request: Request) -> dict:
    return {
        "status_code": status_code,
        "message": message,
        "path": request.url.path,
        "timestamp": datetime.now().isoformat()
    }


@app.exception_handler(EwmError)
async def ewm_exception_handler(request: Request, exc: EwmError):
    """Map business errors to 404, 400 or 409."""
    logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.message, request)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads, including unknown state actions, are bad requests."""
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    )
    logger.warning(f"Request validation failed on {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=_error_body(400, message, request))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP exception handler for FastAPI HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail, request),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body(500, "An internal server error occurred", request)
    )


app.include_router(api_router)


@app.get("/health")
async def simple_health_check():
    """Simple health check endpoint."""
    return {"status": "healthy", "service": "ewm", "database": db_manager.health_check()}
