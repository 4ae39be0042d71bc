"""
AWS Rekognition moderation client.

Wraps DetectModerationLabels; the blocking boto3 call runs in a worker thread
so many frames can be classified concurrently from the event loop.
"""

import asyncio

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from vidmod.features.video_moderation.domain.models import ModerationLabel
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONNECT_TIMEOUT = 5  # seconds
READ_TIMEOUT = 30


class ClassificationError(Exception):
    """Custom exception for classification service errors."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class RekognitionClassifier:
    """Image moderation via AWS Rekognition."""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        client=None,
    ):
        self._client = client or boto3.client(
            "rekognition",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                connect_timeout=CONNECT_TIMEOUT,
                read_timeout=READ_TIMEOUT,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )

    async def classify(self, image_bytes: bytes, min_confidence: float) -> list[ModerationLabel]:
        """
        Return moderation labels at or above min_confidence.

        Raises:
            ClassificationError: on any service or transport failure
        """
        try:
            response = await asyncio.to_thread(
                self._client.detect_moderation_labels,
                Image={"Bytes": image_bytes},
                MinConfidence=min_confidence,
            )
        except ClientError as e:
            error = e.response.get("Error", {})
            raise ClassificationError(
                f"Rekognition rejected the request: {error.get('Message', str(e))}",
                error_code=error.get("Code"),
            ) from e
        except BotoCoreError as e:
            raise ClassificationError(f"Rekognition request failed: {e}") from e

        labels = [
            ModerationLabel(
                name=item.get("Name") or "",
                parent_name=item.get("ParentName") or "",
                confidence=float(item.get("Confidence") or 0.0),
            )
            for item in response.get("ModerationLabels", [])
        ]

        logger.debug("Rekognition labels received", label_count=len(labels))
        return labels
