"""
Moderation job runner.

Wraps the pipeline with the retry policy and makes sure a video is never
moderated by two jobs at once within this process.

Usage:
    runner = build_moderation_runner(get_settings())
    outcome = await runner.run(ModerationJob(video_id, video_url))

    # or fire-and-forget from an HTTP handler
    runner.submit(job)
"""

import asyncio

from vidmod.config import Settings
from vidmod.features.video_moderation.domain.models import ModerationJob, ModerationOutcome
from vidmod.features.video_moderation.pipeline.dispatch import ClassificationDispatcher
from vidmod.features.video_moderation.pipeline.disposition import DispositionHandler
from vidmod.features.video_moderation.pipeline.extraction import FrameExtractor
from vidmod.features.video_moderation.pipeline.orchestrator import ModerationPipeline
from vidmod.features.video_moderation.services.retry import RetryPolicy, run_with_retry
from vidmod.infrastructure.observability.logging import (
    bind_job_context,
    clear_job_context,
    get_logger,
)
from vidmod.services.classification.rekognition_client import RekognitionClassifier
from vidmod.services.storage.bunny_client import BunnyStreamClient

logger = get_logger(__name__)


class ModerationAlreadyRunningError(Exception):
    """A job for this video id is already in flight."""

    def __init__(self, video_id: str):
        super().__init__(f"Moderation already running for video {video_id}")
        self.video_id = video_id


class ModerationJobRunner:
    def __init__(
        self,
        pipeline: ModerationPipeline,
        policy: RetryPolicy | None = None,
        storage: BunnyStreamClient | None = None,
    ):
        self._pipeline = pipeline
        self._policy = policy or RetryPolicy()
        self._storage = storage
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def storage(self) -> BunnyStreamClient | None:
        return self._storage

    @property
    def in_flight(self) -> list[str]:
        return sorted(self._in_flight)

    def is_running(self, video_id: str) -> bool:
        return video_id in self._in_flight

    def _reserve(self, video_id: str) -> None:
        if video_id in self._in_flight:
            raise ModerationAlreadyRunningError(video_id)
        self._in_flight.add(video_id)

    async def run(self, job: ModerationJob) -> ModerationOutcome:
        """
        Moderate one video with retries.

        Raises:
            ModerationAlreadyRunningError: another job holds this video id
            Exception: the last infrastructure error once retries are exhausted
        """
        self._reserve(job.video_id)
        return await self._run_reserved(job)

    def submit(self, job: ModerationJob) -> asyncio.Task:
        """Reserve the video id now and moderate it in a background task."""
        self._reserve(job.video_id)
        task = asyncio.create_task(self._run_reserved(job), name=f"moderate-{job.video_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def _run_reserved(self, job: ModerationJob) -> ModerationOutcome:
        bind_job_context(video_id=job.video_id)
        try:
            logger.info("Moderation job started", video_url=job.video_url)
            return await run_with_retry(
                lambda: self._pipeline.run(job),
                self._policy,
                operation_name="Moderation job",
            )
        finally:
            self._in_flight.discard(job.video_id)
            clear_job_context()

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Moderation task cancelled", task=task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Moderation task failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )

    async def drain(self) -> None:
        """Wait for background jobs to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        if self._storage is not None:
            await self._storage.close()


def build_moderation_runner(settings: Settings) -> ModerationJobRunner:
    """
    Wire the pipeline from settings.

    Validates the configuration first so a bad deploy fails at startup rather
    than inside the first job.
    """
    settings.validate_for_moderation()

    storage = BunnyStreamClient(
        library_id=settings.BUNNY_STREAM_LIBRARY_ID,
        api_key=settings.BUNNY_STREAM_API_KEY,
        base_url=settings.BUNNY_STREAM_API_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    classifier = RekognitionClassifier(
        access_key_id=settings.AWS_ACCESS_KEY_ID,
        secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region=settings.AWS_REGION,
    )

    pipeline = ModerationPipeline(
        storage=storage,
        extractor=FrameExtractor(),
        dispatcher=ClassificationDispatcher(
            classifier,
            min_confidence=settings.MODERATION_MIN_CONFIDENCE,
            denylist=settings.MODERATION_DENYLIST,
        ),
        disposition=DispositionHandler(storage),
        scratch_dir=settings.MODERATION_SCRATCH_DIR,
        timestamps=settings.MODERATION_FRAME_TIMESTAMPS,
    )

    logger.info(
        "Moderation runner configured",
        frame_timestamps=settings.MODERATION_FRAME_TIMESTAMPS,
        min_confidence=settings.MODERATION_MIN_CONFIDENCE,
        max_attempts=settings.MODERATION_MAX_ATTEMPTS,
    )
    return ModerationJobRunner(pipeline, RetryPolicy.from_settings(settings), storage=storage)
