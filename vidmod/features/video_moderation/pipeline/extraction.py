"""
Frame extraction with ffmpeg.

One seek-and-grab per timestamp; the source file is never re-encoded.
"""

import asyncio
from collections.abc import Sequence
from pathlib import Path

from vidmod.features.video_moderation.domain.models import FrameSample
from vidmod.features.video_moderation.pipeline.scratch import ScratchSpace
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

FFMPEG_TIMEOUT = 60  # seconds per frame


class FrameExtractionError(Exception):
    """A frame could not be produced for a required timestamp."""

    def __init__(self, message: str, timestamp_seconds: int | None = None):
        super().__init__(message)
        self.timestamp_seconds = timestamp_seconds


class FrameExtractor:
    def __init__(self, ffmpeg_binary: str = "ffmpeg", timeout: float = FFMPEG_TIMEOUT):
        self._ffmpeg = ffmpeg_binary
        self._timeout = timeout

    def _build_command(self, video_path: Path, timestamp_seconds: int, out_path: Path) -> list[str]:
        # -ss before -i seeks the input instead of decoding up to the offset
        return [
            self._ffmpeg,
            "-hide_banner",
            "-loglevel", "error",
            "-y",
            "-ss", f"{timestamp_seconds:.3f}",
            "-i", str(video_path),
            "-frames:v", "1",
            "-q:v", "2",
            str(out_path),
        ]

    async def extract(
        self,
        video_path: Path,
        timestamps: Sequence[int],
        scratch: ScratchSpace,
    ) -> list[FrameSample]:
        """
        Grab one JPEG per timestamp, in the order given.

        All frames are required: the first failing timestamp aborts the whole
        extraction.

        Raises:
            FrameExtractionError: naming the timestamp that failed
        """
        frames: list[FrameSample] = []
        for timestamp in timestamps:
            out_path = scratch.frame_path(timestamp)
            await self._extract_one(video_path, timestamp, out_path)
            frames.append(FrameSample(timestamp_seconds=timestamp, local_path=out_path))

        logger.info("Frames extracted", frame_count=len(frames))
        return frames

    async def _extract_one(self, video_path: Path, timestamp: int, out_path: Path) -> None:
        cmd = self._build_command(video_path, timestamp, out_path)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise FrameExtractionError(
                f"Command not found: {cmd[0]}. Ensure ffmpeg is installed and on PATH.",
                timestamp_seconds=timestamp,
            ) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise FrameExtractionError(
                f"ffmpeg timed out extracting frame at {timestamp}s",
                timestamp_seconds=timestamp,
            ) from e

        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="ignore").strip()[-300:]
            raise FrameExtractionError(
                f"ffmpeg failed at {timestamp}s (exit {proc.returncode}): {detail}",
                timestamp_seconds=timestamp,
            )

        # ffmpeg exits 0 without writing anything when the offset is past the end
        if not out_path.exists() or out_path.stat().st_size == 0:
            raise FrameExtractionError(
                f"No frame produced at {timestamp}s (video shorter than offset?)",
                timestamp_seconds=timestamp,
            )
