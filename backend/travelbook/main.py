"""
Travel Booking Engine - Main Application Entry Point

Seat-inventory booking for bus, train and flight routes:
- Seats on a dated trip are never sold twice under concurrent requests
- Layered price resolution (overrides, recurring rules, holidays, weekends)
- Schedule cancellation cascade and automatic completion of past trips
- Structured logging with request correlation, Prometheus metrics, Redis quote cache
"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from travelbook.core.config import get_settings
from travelbook.core.exceptions import BookingEngineError
from travelbook.core.logging import get_logger, setup_logging
from travelbook.core.metrics import metrics_endpoint
from travelbook.api.middleware import RequestLoggingMiddleware
from travelbook.api.router import api_router
from travelbook.db.session import build_database
from travelbook.services.cache_service import QuoteCache, SweepThrottle, close_redis, get_cache_stats, get_redis
from travelbook.services.lifecycle_service import LifecycleSweeper

settings = get_settings()


async def auto_complete_loop(sweeper: LifecycleSweeper) -> None:
    """Sweep once per throttle interval for the lifetime of the process."""
    logger = get_logger(__name__)
    while True:
        result = await sweeper.run_if_due()
        if result.ran:
            logger.debug("auto_complete_tick", changes=result.changes)
        await asyncio.sleep(max(settings.AUTO_COMPLETE_INTERVAL_SECONDS, 1))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    database = build_database(settings)
    app.state.database = database

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without quote cache")
    app.state.quote_cache = QuoteCache(redis_client)
    app.state.sweep_throttle = SweepThrottle(redis_client)

    sweeper_task = None
    if settings.AUTO_COMPLETE_ENABLED:
        sweeper = LifecycleSweeper(database, app.state.sweep_throttle)
        sweeper_task = asyncio.create_task(auto_complete_loop(sweeper))

    yield

    if sweeper_task is not None:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task
    await close_redis()
    await database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat-inventory booking engine with layered dynamic pricing",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


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


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
