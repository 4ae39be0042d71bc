"""
Expired Video Cleanup Job - videos are ephemeral.

Deletes every video older than VIDEO_RETENTION_HOURS (default 72):
1. Remote asset from Bunny Stream (404 counts as deleted)
2. The videos row

Design:
- One failing video never stops the sweep
- Logs every deletion
- Reuses the idempotent storage delete from the moderation pipeline

Usage:
    # Start the cleanup scheduler (in main.py lifespan)
    asyncio.create_task(start_expired_video_cleanup_scheduler(settings, storage))
"""

import asyncio
from datetime import UTC, datetime, timedelta

from vidmod.config import Settings, get_settings
from vidmod.db.pool import db_pool
from vidmod.features.video_moderation.repository.video_repository import (
    VideoModerationRepository,
)
from vidmod.infrastructure.observability.logging import get_logger, setup_logging
from vidmod.services.storage.bunny_client import BunnyStreamClient

logger = get_logger(__name__)


class ExpiredVideoCleanupJob:
    """Background job that enforces the video retention window."""

    def __init__(self, storage, retention_hours: int = 72, repository=VideoModerationRepository):
        self._storage = storage
        self._retention_hours = retention_hours
        self._repository = repository
        self.is_running = False

    async def run_cleanup(self, now: datetime | None = None) -> dict:
        """
        Run one sweep.

        Returns:
            dict: {
                "success": bool,
                "deleted_count": int,
                "failed_count": int,
                "details": list,
            }
        """
        if self.is_running:
            logger.warning("Cleanup job already running, skipping")
            return {"success": False, "error": "Already running"}

        self.is_running = True
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(hours=self._retention_hours)

        result = {"success": True, "deleted_count": 0, "failed_count": 0, "details": []}

        try:
            expired = await self._repository.fetch_expired_videos(cutoff)

            if not expired:
                logger.info("No expired videos to delete", cutoff=cutoff.isoformat())
                return result

            logger.info("Found expired videos", count=len(expired), cutoff=cutoff.isoformat())

            for video in expired:
                detail = await self._delete_expired_video(video, now)
                result["details"].append(detail)
                if detail["success"]:
                    result["deleted_count"] += 1
                else:
                    result["failed_count"] += 1

        except Exception as e:
            logger.error("Unexpected error in expired video cleanup", error=str(e))
            result["success"] = False
            result["error"] = str(e)

        finally:
            self.is_running = False

        logger.info(
            "Expired video cleanup completed",
            deleted_count=result["deleted_count"],
            failed_count=result["failed_count"],
        )
        return result

    async def _delete_expired_video(self, video: dict, now: datetime) -> dict:
        video_id = str(video["id"])
        created_at = video.get("created_at")
        age_hours = (
            round((now - created_at).total_seconds() / 3600, 1) if created_at else None
        )

        detail = {
            "video_id": video_id,
            "caption": video.get("caption"),
            "age_hours": age_hours,
            "success": False,
            "asset_deleted": False,
        }

        if video.get("video_url"):
            try:
                detail["asset_deleted"] = await self._storage.delete_by_url(video["video_url"])
            except Exception as e:
                logger.error(
                    "Failed to delete expired video from storage", video_id=video_id, error=str(e)
                )
        else:
            detail["asset_deleted"] = True

        try:
            await self._repository.delete_video(video_id)
            detail["success"] = True
            logger.info("Expired video deleted", video_id=video_id, age_hours=age_hours)
        except Exception as e:
            detail["error"] = str(e)
            logger.error("Failed to delete expired video row", video_id=video_id, error=str(e))

        return detail


# ==========================================================================
# SCHEDULER
# ==========================================================================


async def start_expired_video_cleanup_scheduler(settings: Settings, storage) -> None:
    """
    Run the cleanup job every VIDEO_CLEANUP_INTERVAL_SECONDS until cancelled.
    """
    job = ExpiredVideoCleanupJob(storage, retention_hours=settings.VIDEO_RETENTION_HOURS)
    interval = settings.VIDEO_CLEANUP_INTERVAL_SECONDS

    logger.info(
        "Expired video cleanup scheduler started",
        interval_seconds=interval,
        retention_hours=settings.VIDEO_RETENTION_HOURS,
    )

    while True:
        await job.run_cleanup()
        await asyncio.sleep(interval)


async def run_expired_video_cleanup_worker() -> None:
    """Standalone worker entry point: own pool, own storage client."""
    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL)

    storage = BunnyStreamClient(
        library_id=settings.BUNNY_STREAM_LIBRARY_ID,
        api_key=settings.BUNNY_STREAM_API_KEY,
        base_url=settings.BUNNY_STREAM_API_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    await db_pool.initialize(settings)
    try:
        await start_expired_video_cleanup_scheduler(settings, storage)
    finally:
        await storage.close()
        await db_pool.close()
