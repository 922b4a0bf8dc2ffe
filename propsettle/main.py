"""
Main FastAPI application for the PropSettle settlement API.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from propsettle.core.config import settings
from propsettle.core.logging import configure_logging, get_logger
from propsettle.core.middleware import CorrelationIdMiddleware
from propsettle.core.rate_limit import limiter, GENERAL_LIMIT, HEALTH_LIMIT
from propsettle.core import metrics
from propsettle.api.routes import validation, parlays
from propsettle.services.core.circuit_breaker import get_all_breaker_states

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if settings.SCHEDULER_ENABLED:
        from propsettle.core.scheduler import start_scheduler
        await start_scheduler()
        logger.info("Settlement scheduler started")
    else:
        logger.info("Settlement scheduler disabled (SCHEDULER_ENABLED=false)")

    metrics.update_scheduler_metrics()
    logger.info("Application started")

    yield

    from propsettle.core.scheduler import stop_scheduler
    await stop_scheduler()
    metrics.update_scheduler_metrics()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Settles player-prop predictions and parlays against official box scores",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Prometheus metrics must be initialized before routes are added
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
logger.info("Prometheus metrics initialized at /metrics")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1
app.include_router(validation.router, prefix="/api/v1")
app.include_router(parlays.router, prefix="/api/v1")


@app.get("/")
@limiter.limit(GENERAL_LIMIT)
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "sports": ["mlb", "nfl", "nhl"],
        "endpoints": {
            "api_version": "v1",
            "validation": {
                "check": "/api/v1/validation/check",
                "stats": "/api/v1/validation/stats",
                "reconcile": "/api/v1/validation/reconcile",
            },
            "parlays": {
                "validate": "/api/v1/parlays/validate",
            },
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }
    }


@app.get("/health")
@limiter.limit(HEALTH_LIMIT)
async def health_check(request: Request):
    """Health check with scheduler and stat provider circuit states."""
    from propsettle.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    breakers = get_all_breaker_states()

    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {
            "scheduler": {
                "status": "running" if scheduler and scheduler.running else "stopped",
                "jobs": [
                    {"id": j.id, "name": j.name} for j in scheduler.scheduler.get_jobs()
                ] if scheduler and scheduler.scheduler and scheduler.running else [],
            },
            "stat_providers": breakers,
        },
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "propsettle.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
