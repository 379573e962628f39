"""Lightning Tracker API Server - Main Entry Point"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lightning_tracker.api.middleware import RequestLoggingMiddleware
from lightning_tracker.api.routes import admin, health, location, realtime, visits
from lightning_tracker.core.config import settings
from lightning_tracker.core.logging import get_logger, log_error, setup_logging
from lightning_tracker.core.websocket import ConnectionRegistry
from lightning_tracker.db.session import Database
from lightning_tracker.services.environment import EnvironmentalDataProvider
from lightning_tracker.services.tracking import TrackingService

setup_logging(
    level="DEBUG" if settings.debug else "INFO",
    json_logs=settings.environment == "production",
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "Starting Lightning Tracker",
        extra={
            "event_type": "startup",
            "environment": settings.environment,
            "debug": settings.debug,
        },
    )

    database = Database(settings.async_database_url, echo=settings.db_echo)
    if settings.persistence_enabled:
        await database.connect(run_migrations=settings.run_migrations)
    else:
        logger.warning("DATABASE_URL not set - running with persistence disabled")

    environment = EnvironmentalDataProvider(settings)
    if not settings.weather_enabled:
        logger.info("WEATHER_API_KEY not set - environmental data will be mocked")

    tracking = TrackingService(database, environment)
    await tracking.sessions.close_orphaned_sessions()

    app.state.tracking = tracking
    app.state.registry = ConnectionRegistry()

    logger.info("=== SERVER STARTUP COMPLETE - READY TO ACCEPT CONNECTIONS ===")
    yield

    logger.info("Shutting down Lightning Tracker", extra={"event_type": "shutdown"})
    await database.disconnect()


app = FastAPI(
    title="Lightning Tracker",
    description="Real-time GPS tracking with environmental data",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it processes first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials="*" not in settings.allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(location.router, prefix="/api", tags=["Location"])
app.include_router(visits.router, prefix="/api", tags=["Visits"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])
app.include_router(realtime.router, tags=["Realtime"])


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler with full error logging."""
    log_error(
        logger,
        "Unhandled exception",
        error=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "client_ip": request.client.host if request.client else "unknown",
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint for basic connectivity check."""
    return {"status": "ok", "service": "lightning-tracker"}
