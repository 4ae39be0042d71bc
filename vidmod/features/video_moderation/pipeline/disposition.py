"""
Disposition of a moderation verdict.

Approval is a single row update. Rejection tears the video down in an order
that stays correct under partial failure and is safe to run again:

1. read owner and caption while the row still exists
2. notify the owner (best-effort, at most once per video)
3. delete the remote asset (404 counts as deleted)
4. delete the row (must succeed, otherwise the job is retried)
"""

from collections.abc import Sequence
from typing import Any, Protocol

from vidmod.features.video_moderation.domain.models import (
    ClassificationResult,
    DispositionSummary,
    ModerationVerdict,
    VideoOwnership,
)
from vidmod.features.video_moderation.repository.video_repository import (
    VideoModerationRepository,
)
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

APPROVAL_NOTE = "Approved by automated frame moderation"


class VideoStorage(Protocol):
    async def delete_by_url(self, video_url: str) -> bool:
        ...


def build_rejection_message(caption: str | None, reasons: Sequence[str]) -> str:
    return (
        f'Your video "{caption or "Untitled"}" was removed because it didn\'t meet our '
        f"community guidelines. Reason: {', '.join(reasons)}"
    )


def build_audit_result(
    verdict: ModerationVerdict, results: Sequence[ClassificationResult]
) -> dict[str, Any]:
    return {
        "approved": verdict.approved,
        "frames_checked": verdict.frames_checked,
        "reasons": list(verdict.reasons),
        "results": [r.to_dict() for r in results],
    }


class DispositionHandler:
    def __init__(self, storage: VideoStorage, repository=VideoModerationRepository):
        self._storage = storage
        self._repository = repository

    async def dispose(
        self,
        video_id: str,
        verdict: ModerationVerdict,
        video_url: str,
        results: Sequence[ClassificationResult] = (),
    ) -> DispositionSummary:
        audit = build_audit_result(verdict, results)

        if verdict.approved:
            await self._repository.mark_approved(video_id, APPROVAL_NOTE, audit)
            logger.info("Video approved", video_id=video_id)
            return DispositionSummary()

        return await self._reject(video_id, verdict, video_url, audit)

    async def _reject(
        self,
        video_id: str,
        verdict: ModerationVerdict,
        video_url: str,
        audit: dict[str, Any],
    ) -> DispositionSummary:
        logger.warning("Rejecting video", video_id=video_id, reasons=verdict.reasons)

        ownership = await self._repository.get_ownership(video_id)

        notified = False
        if ownership is None:
            logger.info("Video row already removed, finishing asset teardown", video_id=video_id)
        else:
            await self._repository.mark_rejected(video_id, "; ".join(verdict.reasons), audit)
            notified = await self._notify_owner(ownership, verdict)

        asset_deleted = await self._delete_asset(video_id, video_url)

        # Row delete failures propagate so the whole disposition is retried
        if ownership is not None:
            await self._repository.delete_video(video_id)
        row_deleted = True

        summary = DispositionSummary(
            asset_deleted=asset_deleted, row_deleted=row_deleted, notified=notified
        )
        logger.info(
            "Video rejected and removed",
            video_id=video_id,
            asset_deleted=asset_deleted,
            row_deleted=row_deleted,
            notified=notified,
        )
        return summary

    async def _notify_owner(self, ownership: VideoOwnership, verdict: ModerationVerdict) -> bool:
        """Best-effort: a missing notification never blocks removing the video."""
        if ownership.notification_sent:
            logger.info("Rejection notification already sent", video_id=ownership.video_id)
            return True

        message = build_rejection_message(ownership.caption, verdict.reasons)
        try:
            await self._repository.record_rejection_notification(ownership, message)
        except Exception as e:
            logger.error(
                "Failed to create rejection notification",
                video_id=ownership.video_id,
                user_id=ownership.user_id,
                error=str(e),
            )
            return False

        return True

    async def _delete_asset(self, video_id: str, video_url: str) -> bool:
        """Tolerated on failure; the row is still removed."""
        try:
            return await self._storage.delete_by_url(video_url)
        except Exception as e:
            logger.error(
                "Failed to delete video from storage, continuing with row delete",
                video_id=video_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
