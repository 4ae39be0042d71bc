"""
Domain subpackage for the video moderation feature.
"""

from .models import (
    ClassificationResult,
    DispositionSummary,
    FrameSample,
    ModerationJob,
    ModerationLabel,
    ModerationOutcome,
    ModerationStatus,
    ModerationVerdict,
    NotificationType,
    VideoOwnership,
)

__all__ = [
    "ClassificationResult",
    "DispositionSummary",
    "FrameSample",
    "ModerationJob",
    "ModerationLabel",
    "ModerationOutcome",
    "ModerationStatus",
    "ModerationVerdict",
    "NotificationType",
    "VideoOwnership",
]
