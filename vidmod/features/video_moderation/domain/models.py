"""
Domain models for the video moderation pipeline.

Everything here is ephemeral and lives for a single job; the only durable
trace of a job is the status written onto the videos row.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    VIDEO_REJECTED = "video_rejected"


@dataclass(slots=True, frozen=True)
class ModerationJob:
    """One uploaded video to moderate."""

    video_id: str
    video_url: str
    thumbnail_url: str | None = None


@dataclass(slots=True, frozen=True)
class FrameSample:
    timestamp_seconds: int
    local_path: Path


@dataclass(slots=True, frozen=True)
class ModerationLabel:
    """A single label returned by the classification service."""

    name: str
    parent_name: str
    confidence: float  # 0-100

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "parent_name": self.parent_name, "confidence": self.confidence}


@dataclass(slots=True)
class ClassificationResult:
    timestamp_seconds: int
    labels: list[ModerationLabel] = field(default_factory=list)
    flagged: bool = False
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp_seconds,
            "labels": [label.to_dict() for label in self.labels],
            "flagged": self.flagged,
            "reasons": list(self.reasons),
        }


@dataclass(slots=True, frozen=True)
class ModerationVerdict:
    approved: bool
    reasons: list[str]
    frames_checked: int


@dataclass(slots=True, frozen=True)
class VideoOwnership:
    """The bits of a videos row needed before it is torn down."""

    video_id: str
    user_id: str
    caption: str | None
    notification_sent: bool = False


@dataclass(slots=True, frozen=True)
class DispositionSummary:
    """What the disposition step actually managed to do."""

    asset_deleted: bool = False
    row_deleted: bool = False
    notified: bool = False

    @property
    def deleted(self) -> bool:
        return self.asset_deleted and self.row_deleted


@dataclass(slots=True, frozen=True)
class ModerationOutcome:
    """Result returned to whoever triggered the job."""

    video_id: str
    status: ModerationStatus
    approved: bool
    frames_checked: int
    message: str
    reasons: list[str] | None = None
    deleted: bool | None = None
    notification_sent: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize in the camelCase shape the upload flow expects."""
        payload: dict[str, Any] = {
            "approved": self.approved,
            "framesChecked": self.frames_checked,
            "message": self.message,
            "status": self.status.value,
        }
        if self.reasons is not None:
            payload["reasons"] = list(self.reasons)
        if self.deleted is not None:
            payload["deleted"] = self.deleted
        if self.notification_sent is not None:
            payload["notificationSent"] = self.notification_sent
        return payload
