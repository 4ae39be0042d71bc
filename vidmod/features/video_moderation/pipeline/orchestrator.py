"""
Moderation pipeline orchestrator.

Acquire -> Extract -> Classify -> Decide -> Dispose, with scratch cleanup on
every exit path.

Stages 1-3 failing means the video could not be evaluated: the row is marked
pending for manual review and run() returns normally, so the retry wrapper
does not re-run it. Anything else that raises (record store down, the final
row delete failing) propagates and is retried.
"""

import time
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from vidmod.config import DEFAULT_FRAME_TIMESTAMPS
from vidmod.features.video_moderation.domain.models import (
    ModerationJob,
    ModerationOutcome,
    ModerationStatus,
)
from vidmod.features.video_moderation.pipeline.dispatch import ClassificationDispatcher
from vidmod.features.video_moderation.pipeline.disposition import DispositionHandler
from vidmod.features.video_moderation.pipeline.extraction import (
    FrameExtractionError,
    FrameExtractor,
)
from vidmod.features.video_moderation.pipeline.scratch import ScratchSpace
from vidmod.features.video_moderation.pipeline.verdict import aggregate
from vidmod.features.video_moderation.repository.video_repository import (
    VideoModerationRepository,
)
from vidmod.infrastructure.observability.logging import get_logger, log_moderation_outcome
from vidmod.services.classification.rekognition_client import ClassificationError
from vidmod.services.storage.bunny_client import VideoDownloadError

logger = get_logger(__name__)


class VideoSource(Protocol):
    async def download(self, video_url: str, destination: Path) -> Path:
        ...


class ModerationPipeline:
    def __init__(
        self,
        storage: VideoSource,
        extractor: FrameExtractor,
        dispatcher: ClassificationDispatcher,
        disposition: DispositionHandler,
        scratch_dir: str | Path,
        timestamps: Sequence[int] = DEFAULT_FRAME_TIMESTAMPS,
        repository=VideoModerationRepository,
    ):
        self._storage = storage
        self._extractor = extractor
        self._dispatcher = dispatcher
        self._disposition = disposition
        self._scratch_dir = Path(scratch_dir)
        self._timestamps = list(timestamps)
        self._repository = repository

    async def run(self, job: ModerationJob) -> ModerationOutcome:
        start_time = time.time()
        outcome = await self._run_stages(job)

        log_moderation_outcome(
            video_id=job.video_id,
            status=outcome.status.value,
            frames_checked=outcome.frames_checked,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            reasons=outcome.reasons,
        )
        return outcome

    async def _run_stages(self, job: ModerationJob) -> ModerationOutcome:
        with ScratchSpace(self._scratch_dir, job.video_id) as scratch:
            # 1. Acquire
            logger.info("Stage started", stage="acquire", video_id=job.video_id)
            video_path = scratch.video_path()
            try:
                await self._storage.download(job.video_url, video_path)
            except VideoDownloadError as e:
                return await self._leave_for_review(job, f"download failed: {e}")

            # 2. Extract
            logger.info("Stage started", stage="extract", video_id=job.video_id)
            try:
                frames = await self._extractor.extract(video_path, self._timestamps, scratch)
            except FrameExtractionError as e:
                return await self._leave_for_review(job, f"frame extraction failed: {e}")

            # 3. Classify
            logger.info("Stage started", stage="classify", video_id=job.video_id)
            try:
                results = await self._dispatcher.classify(frames)
            except ClassificationError as e:
                return await self._leave_for_review(job, f"classification failed: {e}")

            # 4. Decide
            verdict = aggregate(results)

            # 5. Dispose
            logger.info(
                "Stage started", stage="dispose", video_id=job.video_id, approved=verdict.approved
            )
            summary = await self._disposition.dispose(
                job.video_id, verdict, job.video_url, results
            )

        if verdict.approved:
            return ModerationOutcome(
                video_id=job.video_id,
                status=ModerationStatus.APPROVED,
                approved=True,
                frames_checked=verdict.frames_checked,
                message="Video approved successfully",
                deleted=False,
                notification_sent=False,
            )

        return ModerationOutcome(
            video_id=job.video_id,
            status=ModerationStatus.REJECTED,
            approved=False,
            frames_checked=verdict.frames_checked,
            message=f"Video rejected and deleted: {', '.join(verdict.reasons)}",
            reasons=list(verdict.reasons),
            deleted=summary.deleted,
            notification_sent=summary.notified,
        )

    async def _leave_for_review(self, job: ModerationJob, notes: str) -> ModerationOutcome:
        logger.warning("Moderation inconclusive", video_id=job.video_id, notes=notes)
        await self._repository.mark_pending(job.video_id, notes)
        return ModerationOutcome(
            video_id=job.video_id,
            status=ModerationStatus.PENDING,
            approved=False,
            frames_checked=0,
            message=f"Video left for manual review: {notes}",
        )
