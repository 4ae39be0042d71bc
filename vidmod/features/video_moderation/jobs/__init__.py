"""
Job runners for the video moderation feature.
"""

from .expired_video_cleanup_job import (
    ExpiredVideoCleanupJob,
    run_expired_video_cleanup_worker,
    start_expired_video_cleanup_scheduler,
)
from .moderate_video_job import run_moderation_job

__all__ = [
    "ExpiredVideoCleanupJob",
    "run_expired_video_cleanup_worker",
    "run_moderation_job",
    "start_expired_video_cleanup_scheduler",
]
