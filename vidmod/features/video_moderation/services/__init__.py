"""
Service layer for the video moderation feature.
"""

from .retry import RetryPolicy, run_with_retry
from .runner import ModerationAlreadyRunningError, ModerationJobRunner, build_moderation_runner

__all__ = [
    "ModerationAlreadyRunningError",
    "ModerationJobRunner",
    "RetryPolicy",
    "build_moderation_runner",
    "run_with_retry",
]
