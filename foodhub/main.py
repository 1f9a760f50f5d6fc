"""
FastAPI Application Entry Point

FoodHub - multi-tenant food ordering backend.

Route groups:
    - /api: Registration and login
    - /api/customer: Catalog, cart, orders, ratings, messages
    - /api/restaurant: Restaurant profile, menu, incoming orders
    - /api/admin: Accounts, site configuration, moderation, reports
    - /health: System health check

Author: FoodHub Team
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

import redis
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from foodhub.api import admin, auth, customer, restaurant
from foodhub.core.config import get_settings, setup_logging
from foodhub.database import engine, get_db, init_db
from foodhub.schemas import HealthResponse

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Unsafe production config: {missing}")

    if not settings.export_orders_to_ledger:
        logger.info("Ledger export disabled")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant food ordering backend: customers, restaurant owners "
        "and administrators, with order ledger export in the background."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(customer.router)
app.include_router(restaurant.router)
app.include_router(admin.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "message": f"{settings.app_name} is running",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify the database and the Celery broker are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if db_status == redis_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema violations are reported as 400 with every message joined."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        text = error.get("msg", "Invalid value")
        messages.append(f"{field}: {text}" if field else text)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": ", ".join(messages) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "message": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "foodhub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
