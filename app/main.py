"""
FastAPI Application Entry Point

Restaurant Floor Manager - backend for the staff dashboard and the
customer QR ordering page.

Endpoints:
    - POST /api/orders: Public order intake (rate limited)
    - /api/orders, /api/menu, /api/tables, /api/reservations, /api/staff,
      /api/inventory, /api/transactions: Staff resources
    - GET /api/finances/report, POST /api/finances/export: Reporting
    - GET /api/users, PUT /api/users/{id}/role, GET /api/me: Roles
    - WS /ws/{table}: Change stream for orders and floor tables
    - GET /health: System health check

Every error is returned as {"error": "<safe message>"}.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from app.api import routers
from app.core.config import get_settings, setup_logging
from app.core.errors import (
    AppError,
    classify_error,
    safe_error_message,
    status_for_kind,
)
from app.database import engine, get_db, init_db
from app.schemas import HealthResponse
from app.services.imaging import get_image_service
from app.services.rate_limit import get_rate_limiter

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

INVALID_REQUEST = "Invalid request data"


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    # Log service configuration
    logger.info(f"Image Service: {get_image_service().provider_name}")
    logger.info(f"Rate Limiter: {get_rate_limiter().backend_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Floor management for restaurants: orders, menu, tables, "
        "reservations, staff, inventory and finances."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in routers:
    app.include_router(router)

# Menu images and other stored objects
app.mount(
    "/storage",
    StaticFiles(directory=settings.storage_directory, check_dir=False),
    name="storage",
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


async def _redis_status() -> str:
    client = aioredis.from_url(settings.redis_url, socket_timeout=2)
    try:
        await client.ping()
        return "healthy"
    except (RedisError, OSError) as e:
        logger.error(f"Redis health check failed: {e}")
        return "unhealthy"
    finally:
        await client.aclose()


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = "unhealthy"
        logger.error(f"Database health check failed: {e}")

    redis_status = await _redis_status()

    image_status = "healthy" if await get_image_service().health_check() else "unhealthy"
    limiter_status = "healthy" if await get_rate_limiter().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, image_status, limiter_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        image_service=image_status,
        rate_limiter=limiter_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _first_validation_message(exc: RequestValidationError) -> str:
    errors: list[dict[str, Any]] = exc.errors()
    if not errors:
        return INVALID_REQUEST

    first = errors[0]
    if first.get("type") == "json_invalid":
        return INVALID_REQUEST

    field = ".".join(
        str(part) for part in first.get("loc", ())
        if part not in ("body", "query", "path")
    )
    message = str(first.get("msg", INVALID_REQUEST)).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _first_validation_message(exc)
    logger.info(f"Rejected {request.method} {request.url.path}: {message}")
    return _error(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Raw database text is logged, never returned."""
    logger.exception(f"Database error on {request.method} {request.url.path}")
    kind = classify_error(exc)
    return _error(status_for_kind(kind), safe_error_message(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return _error(500, safe_error_message(exc))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
