"""
Per-job scratch space.

Every local file a job creates is registered here first, so leaving the
``with`` block removes all of them no matter which stage failed.
"""

import re
from pathlib import Path

from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class ScratchSpace:
    def __init__(self, root: str | Path, video_id: str):
        self.root = Path(root)
        self.video_id = video_id
        self._token = _UNSAFE_FILENAME_CHARS.sub("_", video_id)
        self._paths: list[Path] = []

    def __enter__(self) -> "ScratchSpace":
        self.root.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def register(self, name: str) -> Path:
        path = self.root / name
        if path not in self._paths:
            self._paths.append(path)
        return path

    def video_path(self) -> Path:
        return self.register(f"video_{self._token}")

    def frame_path(self, timestamp_seconds: int) -> Path:
        return self.register(f"frame_{self._token}_{timestamp_seconds}s.jpg")

    def release(self) -> int:
        """Delete every registered file; returns how many existed."""
        removed = 0
        for path in self._paths:
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning("Failed to remove scratch file", path=str(path), error=str(e))

        logger.debug("Scratch space released", video_id=self.video_id, removed=removed)
        self._paths.clear()
        return removed
