"""
Repository helpers for video moderation.

Raw SQL against the Supabase ``videos`` and ``notifications`` tables. Every
method raises DatabaseError on failure; callers decide what is best-effort.
"""

from datetime import datetime
from typing import Any

from psycopg.types.json import Jsonb

from vidmod.db.helpers import execute_query, execute_transaction, fetch_all, fetch_one
from vidmod.features.video_moderation.domain.models import (
    ModerationStatus,
    NotificationType,
    VideoOwnership,
)
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class VideoModerationRepository:
    """Raw SQL helpers for the moderation pipeline."""

    @classmethod
    async def mark_pending(cls, video_id: str, notes: str) -> int:
        query = """
            UPDATE videos
            SET is_approved = NULL,
                moderation_status = %s,
                moderation_notes = %s
            WHERE id = %s
        """
        updated = await execute_query(query, (ModerationStatus.PENDING.value, notes, video_id))
        if updated == 0:
            logger.warning("Video row missing while marking pending", video_id=video_id)
        return updated

    @classmethod
    async def mark_approved(cls, video_id: str, notes: str, result: dict[str, Any]) -> int:
        query = """
            UPDATE videos
            SET is_approved = TRUE,
                moderation_status = %s,
                moderation_notes = %s,
                moderation_result = %s
            WHERE id = %s
        """
        updated = await execute_query(
            query, (ModerationStatus.APPROVED.value, notes, Jsonb(result), video_id)
        )
        if updated == 0:
            logger.warning("Video row missing while marking approved", video_id=video_id)
        return updated

    @classmethod
    async def mark_rejected(cls, video_id: str, notes: str, result: dict[str, Any]) -> int:
        """
        Record the rejection on the row ahead of teardown.

        The jsonb merge keeps any notification_sent flag from an earlier attempt.
        """
        query = """
            UPDATE videos
            SET is_approved = FALSE,
                moderation_status = %s,
                moderation_notes = %s,
                moderation_result = COALESCE(moderation_result, '{}'::jsonb) || %s
            WHERE id = %s
        """
        return await execute_query(
            query, (ModerationStatus.REJECTED.value, notes, Jsonb(result), video_id)
        )

    @classmethod
    async def get_ownership(cls, video_id: str) -> VideoOwnership | None:
        query = """
            SELECT
                user_id,
                caption,
                COALESCE((moderation_result ->> 'notification_sent')::boolean, FALSE)
                    AS notification_sent
            FROM videos
            WHERE id = %s
        """
        row = await fetch_one(query, (video_id,))
        if not row:
            return None

        return VideoOwnership(
            video_id=video_id,
            user_id=str(row["user_id"]),
            caption=row.get("caption"),
            notification_sent=bool(row.get("notification_sent")),
        )

    @classmethod
    async def record_rejection_notification(cls, ownership: VideoOwnership, message: str) -> None:
        """Insert the notification and flag the row in one transaction."""
        await execute_transaction(
            [
                (
                    """
                    INSERT INTO notifications (user_id, actor_id, type, message, is_read)
                    VALUES (%s, %s, %s, %s, FALSE)
                    """,
                    (
                        ownership.user_id,
                        ownership.user_id,
                        NotificationType.VIDEO_REJECTED.value,
                        message,
                    ),
                ),
                (
                    """
                    UPDATE videos
                    SET moderation_result = COALESCE(moderation_result, '{}'::jsonb) || %s
                    WHERE id = %s
                    """,
                    (Jsonb({"notification_sent": True}), ownership.video_id),
                ),
            ]
        )

    @classmethod
    async def delete_video(cls, video_id: str) -> int:
        return await execute_query("DELETE FROM videos WHERE id = %s", (video_id,))

    @classmethod
    async def fetch_expired_videos(cls, cutoff: datetime, limit: int = 500) -> list[dict[str, Any]]:
        query = """
            SELECT id, video_url, caption, user_id, created_at
            FROM videos
            WHERE created_at < %s
            ORDER BY created_at ASC
            LIMIT %s
        """
        return await fetch_all(query, (cutoff, limit))
