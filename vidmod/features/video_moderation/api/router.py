"""
Video moderation routes.

The upload flow calls POST /moderation/videos once a video has finished
uploading; the job then runs in the background on this process.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from vidmod.features.video_moderation.services.runner import (
    ModerationAlreadyRunningError,
    ModerationJobRunner,
)
from vidmod.infrastructure.observability.logging import get_logger
from vidmod.models.api.moderation_request import ModerationTriggerRequest
from vidmod.models.api.moderation_response import (
    InFlightModerationResponse,
    ModerationTriggerResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/moderation", tags=["moderation"])


def get_moderation_runner(request: Request) -> ModerationJobRunner:
    runner = getattr(request.app.state, "moderation_runner", None)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation runner not initialized",
        )
    return runner


@router.post(
    "/videos",
    response_model=ModerationTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_video_moderation(
    payload: ModerationTriggerRequest,
    runner: ModerationJobRunner = Depends(get_moderation_runner),
) -> ModerationTriggerResponse:
    """Queue moderation for a freshly uploaded video."""
    job = payload.to_job()

    try:
        runner.submit(job)
    except ModerationAlreadyRunningError as e:
        logger.info("Duplicate moderation trigger ignored", video_id=job.video_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    logger.info("Moderation job queued", video_id=job.video_id)
    return ModerationTriggerResponse(video_id=job.video_id)


@router.get("/videos/in-flight", response_model=InFlightModerationResponse)
async def list_in_flight_moderation(
    runner: ModerationJobRunner = Depends(get_moderation_runner),
) -> InFlightModerationResponse:
    video_ids = runner.in_flight
    return InFlightModerationResponse(video_ids=video_ids, count=len(video_ids))
