"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the matching job.

    python -m vidmod.jobs.worker moderate_video '{"videoId": "...", "videoUrl": "..."}'
    python -m vidmod.jobs.worker expired_video_cleanup
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from vidmod.features.video_moderation.jobs.expired_video_cleanup_job import (
    run_expired_video_cleanup_worker,
)
from vidmod.features.video_moderation.jobs.moderate_video_job import run_moderation_job
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[Any]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "moderate_video": run_moderation_job,
    "expired_video_cleanup": run_expired_video_cleanup_worker,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "moderate_video").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
