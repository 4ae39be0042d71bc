"""
Classification dispatch.

Fans every frame out to the classification service at once and joins on all
of them. One failed call fails the stage: a frame that was never examined
must not count as clean.
"""

import asyncio
from collections.abc import Iterable, Sequence
from typing import Protocol

from vidmod.config import DEFAULT_DENYLIST
from vidmod.features.video_moderation.domain.models import (
    ClassificationResult,
    FrameSample,
    ModerationLabel,
)
from vidmod.infrastructure.observability.logging import get_logger
from vidmod.services.classification.rekognition_client import ClassificationError

logger = get_logger(__name__)

DEFAULT_MIN_CONFIDENCE = 80.0


class ImageClassifier(Protocol):
    async def classify(self, image_bytes: bytes, min_confidence: float) -> list[ModerationLabel]:
        ...


def format_reason(label: ModerationLabel, timestamp_seconds: int) -> str:
    return f"{label.name} at {timestamp_seconds}s ({label.confidence:.2f}% confidence)"


def evaluate_labels(
    timestamp_seconds: int,
    labels: Iterable[ModerationLabel],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    denylist: Iterable[str] = DEFAULT_DENYLIST,
) -> ClassificationResult:
    """
    Flag a frame if any label at or above min_confidence hits the denylist.

    The boundary is inclusive, matching the MinConfidence filter sent to the
    service.
    """
    denied = set(denylist)
    result = ClassificationResult(timestamp_seconds=timestamp_seconds, labels=list(labels))

    for label in result.labels:
        if label.confidence < min_confidence:
            continue
        if label.name in denied or label.parent_name in denied:
            result.flagged = True
            result.reasons.append(format_reason(label, timestamp_seconds))

    return result


class ClassificationDispatcher:
    def __init__(
        self,
        classifier: ImageClassifier,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        denylist: Iterable[str] = DEFAULT_DENYLIST,
    ):
        self._classifier = classifier
        self._min_confidence = min_confidence
        self._denylist = tuple(denylist)

    async def classify(self, frames: Sequence[FrameSample]) -> list[ClassificationResult]:
        """
        Classify all frames concurrently; results keep the input order.

        Raises:
            ClassificationError: the first failure; outstanding calls are cancelled
        """
        tasks = [asyncio.create_task(self._classify_frame(frame)) for frame in frames]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        flagged = sum(1 for r in results if r.flagged)
        logger.info("Frames classified", frame_count=len(results), flagged_frames=flagged)
        return list(results)

    async def _classify_frame(self, frame: FrameSample) -> ClassificationResult:
        timestamp = frame.timestamp_seconds

        try:
            image_bytes = await asyncio.to_thread(frame.local_path.read_bytes)
            labels = await self._classifier.classify(image_bytes, self._min_confidence)
        except ClassificationError as e:
            logger.error("Frame classification failed", timestamp=timestamp, error=str(e))
            raise ClassificationError(
                f"frame at {timestamp}s: {e}", error_code=e.error_code
            ) from e
        except Exception as e:
            logger.error(
                "Frame classification failed",
                timestamp=timestamp,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ClassificationError(f"frame at {timestamp}s: {type(e).__name__}: {e}") from e

        return evaluate_labels(timestamp, labels, self._min_confidence, self._denylist)
