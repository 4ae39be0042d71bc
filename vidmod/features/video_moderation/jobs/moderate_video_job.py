"""
One-shot moderation job for the worker process.

The payload is the JSON the upload flow sends:
    {"videoId": "...", "videoUrl": "...", "thumbnailUrl": "..."}
taken from the second CLI argument or MODERATION_JOB_PAYLOAD.
"""

import json
import os
import sys

from vidmod.config import get_settings
from vidmod.db.pool import db_pool
from vidmod.features.video_moderation.domain.models import ModerationOutcome
from vidmod.features.video_moderation.services.runner import build_moderation_runner
from vidmod.infrastructure.observability.logging import get_logger, setup_logging
from vidmod.models.api.moderation_request import ModerationTriggerRequest

logger = get_logger(__name__)


def _resolve_payload() -> str:
    if len(sys.argv) > 2:
        return sys.argv[2]
    payload = os.getenv("MODERATION_JOB_PAYLOAD")
    if not payload:
        raise ValueError(
            "No moderation payload given. Pass it as the second argument or set "
            "MODERATION_JOB_PAYLOAD."
        )
    return payload


async def run_moderation_job(payload: str | None = None) -> ModerationOutcome:
    """Moderate a single video end to end, then shut everything down."""
    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL)

    request = ModerationTriggerRequest.model_validate_json(payload or _resolve_payload())
    runner = build_moderation_runner(settings)

    await db_pool.initialize(settings)
    try:
        outcome = await runner.run(request.to_job())
    finally:
        await runner.close()
        await db_pool.close()

    logger.info("Moderation job finished", result=json.dumps(outcome.to_payload()))
    return outcome
