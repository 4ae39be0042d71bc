"""
Bunny Stream client for the video moderation worker.
Downloads uploaded videos to scratch space and deletes rejected ones.
Low-level storage API client
"""

import re
from pathlib import Path

import httpx

from vidmod.config import validate_storage_credentials
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://video.bunnycdn.com"
REQUEST_TIMEOUT = 30  # seconds
DOWNLOAD_CHUNK_SIZE = 1024 * 256

VIDEO_ID_PATTERN = re.compile(
    r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$", re.IGNORECASE
)


class StorageServiceError(Exception):
    """Custom exception for Bunny Stream API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class VideoDownloadError(StorageServiceError):
    """The uploaded video could not be fetched from its origin URL."""


def extract_video_id(video_url: str) -> str:
    """
    Pull the Bunny Stream video id out of a playback URL.

    Handles:
    - https://vz-xxxxx.b-cdn.net/{video_id}/playlist.m3u8
    - https://vz-xxxxx.b-cdn.net/{video_id}/playlist.m3u8?v=xxx
    - a bare video id

    Falls back to the last path segment when no UUID-shaped segment exists.
    """
    if "/" not in video_url and "." not in video_url:
        return video_url

    clean = re.sub(r"^https?://", "", video_url)
    clean = clean.split("?")[0]
    clean = re.sub(r"\.m3u8$", "", clean)
    clean = re.sub(r"/playlist$", "", clean)

    parts = clean.split("/")
    for part in parts:
        if VIDEO_ID_PATTERN.match(part):
            return part

    return parts[-1] or video_url


class BunnyStreamClient:
    """
    Async client for the Bunny Stream video library.

    Deletion treats 404 as success so it can be re-run safely after a
    partially completed rejection.
    """

    def __init__(
        self,
        library_id: str,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        validate_storage_credentials(library_id, api_key)
        self._library_id = library_id
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        return {
            "AccessKey": self._api_key,
            "Accept": "application/json",
        }

    async def download(self, video_url: str, destination: Path) -> Path:
        """
        Stream a video into a local file.

        Raises:
            VideoDownloadError: non-2xx response or network failure
        """
        logger.info("Downloading video", video_url=video_url, destination=str(destination))

        try:
            async with self._client.stream("GET", video_url) as response:
                if not response.is_success:
                    raise VideoDownloadError(
                        f"HTTP {response.status_code} {response.reason_phrase}",
                        status_code=response.status_code,
                    )

                size = 0
                with open(destination, "wb") as fh:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        fh.write(chunk)
                        size += len(chunk)

        except httpx.HTTPError as e:
            raise VideoDownloadError(f"{type(e).__name__}: {e}") from e

        logger.info("Video downloaded", size_bytes=size, destination=str(destination))
        return destination

    async def delete_video(self, video_id: str) -> bool:
        """
        Delete a video from the library.

        Returns:
            True when the video was deleted or was already gone

        Raises:
            StorageServiceError: any other response or a network failure
        """
        url = f"{self._base_url}/library/{self._library_id}/videos/{video_id}"

        try:
            response = await self._client.delete(url, headers=self._get_auth_headers())
        except httpx.HTTPError as e:
            raise StorageServiceError(f"Storage delete request failed: {e}") from e

        if response.is_success:
            logger.info("Video deleted from storage", storage_video_id=video_id)
            return True

        if response.status_code == 404:
            logger.info("Video already absent from storage", storage_video_id=video_id)
            return True

        body = response.text[:200] if response.text else ""
        message = f"Storage delete failed (HTTP {response.status_code})"
        if response.status_code == 400 and "libraryId" in body:
            message += ": library id rejected, check that library id and API key are not swapped"

        logger.error(
            "Storage delete failed",
            storage_video_id=video_id,
            status_code=response.status_code,
            response_text=body,
        )
        raise StorageServiceError(message, status_code=response.status_code, response_text=body)

    async def delete_by_url(self, video_url: str) -> bool:
        """Delete the video a playback URL points at."""
        return await self.delete_video(extract_video_id(video_url))
