"""
Main FastAPI application for the Tournament Registrations API.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from tournoi.core.config import settings
from tournoi.core.errors import ApiError, ErrorKind
from tournoi.core.limiter import HEALTH_LIMIT, DEFAULT_LIMIT, limiter
from tournoi.core.logging import configure_logging, get_logger
from tournoi.core.middleware import CorrelationIdMiddleware
from tournoi.core.scheduler import get_scheduler, start_scheduler, stop_scheduler
from tournoi.api.routes import players, refresh, stats
from tournoi.services.container import build_services

# Configure structured logging with JSON formatter
configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON  # False gives colored output for development
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    container = build_services(settings)
    app.state.registration_service = container.registration_service

    if settings.SCHEDULER_ENABLED:
        await start_scheduler(
            container.registration_service.run_scheduled_refresh,
            interval_seconds=settings.REFRESH_INTERVAL_SECONDS,
        )
        logger.info("Refresh scheduler started")

    logger.info("Application started")

    yield

    # Shutdown
    await stop_scheduler()
    await container.close()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Tournament registrations from HelloAsso, enriched with FFTT rankings",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
logger.info("Prometheus metrics initialized at /metrics")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(players.router, prefix="/api")
app.include_router(refresh.router, prefix="/api")
app.include_router(stats.router, prefix="/api")


@app.get("/")
@limiter.limit(DEFAULT_LIMIT)
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "players": "/api/players",
            "refresh": "/api/refresh",
            "stats": "/api/stats",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }
    }


@app.get("/health")
@limiter.limit(HEALTH_LIMIT)  # Higher limit for health checks
async def health_check(request: Request):
    """Health check endpoint."""
    scheduler = get_scheduler()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "scheduler": "running" if scheduler and scheduler.running else "stopped"
    }


# Exception handlers
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Render ApiError as ``{code, message}`` with its HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", extra={"path": request.url.path})
    else:
        logger.info(f"{exc.code}: {exc.message}", extra={"path": request.url.path})

    headers = None
    if exc.kind is ErrorKind.RATE_LIMITED and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler; details stay in the logs."""
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"code": ErrorKind.INTERNAL.value, "message": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tournoi.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
