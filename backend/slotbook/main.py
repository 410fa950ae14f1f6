"""
SlotBook API - Main Application Entry Point

Reservation backend for host-run dining slots:
- First-come-first-served and lottery admission against a per-slot table ledger
- FIFO waitlists that refill cancelled tables automatically
- Redis caching of slot listings with write-through invalidation
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slotbook.core.config import get_settings
from slotbook.core.exceptions import BookingError, InvalidState
from slotbook.core.logging import setup_logging, get_logger
from slotbook.core.metrics import metrics_endpoint
from slotbook.api.router import api_router
from slotbook.api.middleware import RequestLoggingMiddleware
from slotbook.services.cache_service import get_redis, close_redis, get_cache_stats
from slotbook.services.notification_service import get_notifier

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await get_notifier().drain()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Slot reservations with FCFS, lottery and waitlist admission",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render domain errors as {"detail", "code"} with the error's HTTP status."""
    if isinstance(exc, InvalidState):
        logger.error("invalid_state", detail=exc.detail, **exc.context)
    else:
        logger.info("booking_error", code=exc.code, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
