"""
HTTP entry point for the video moderation worker.
"""

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from vidmod.config import get_settings
from vidmod.db.pool import db_pool
from vidmod.features.video_moderation.api.router import router as moderation_router
from vidmod.features.video_moderation.jobs.expired_video_cleanup_job import (
    start_expired_video_cleanup_scheduler,
)
from vidmod.features.video_moderation.services.runner import build_moderation_runner
from vidmod.infrastructure.observability.logging import get_logger, setup_logging
from vidmod.routes import health

# Setup logging before creating the app
setup_logging(log_level="INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL)

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    # Fails fast on missing or swapped credentials, before any network call
    runner = build_moderation_runner(settings)

    try:
        await db_pool.initialize(settings)
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        await runner.close()
        raise

    app.state.moderation_runner = runner

    cleanup_task = None
    if settings.VIDEO_CLEANUP_ENABLED:
        cleanup_task = asyncio.create_task(
            start_expired_video_cleanup_scheduler(settings, runner.storage)
        )

    logger.info("All services initialized successfully")

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass

    try:
        logger.info("Waiting for in-flight moderation jobs", count=len(runner.in_flight))
        await runner.close()
    except Exception as e:
        logger.error("Error closing moderation runner", error=str(e))
        shutdown_errors.append(f"Runner: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Video Moderation Worker",
    description="Frame-sampled moderation of uploaded videos",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(moderation_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
