from datetime import UTC, datetime, timedelta

import pytest

from vidmod.db.helpers import DatabaseError
from vidmod.features.video_moderation.jobs.expired_video_cleanup_job import (
    ExpiredVideoCleanupJob,
)
from vidmod.services.storage.bunny_client import StorageServiceError

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


class ExpiryRepository:
    def __init__(self, videos):
        self.videos = videos
        self.cutoffs = []
        self.deleted = []
        self.fail_for = set()

    async def fetch_expired_videos(self, cutoff, limit=500):
        self.cutoffs.append(cutoff)
        return [v for v in self.videos if v["created_at"] < cutoff]

    async def delete_video(self, video_id):
        if video_id in self.fail_for:
            raise DatabaseError("row locked", operation="execute")
        self.deleted.append(video_id)
        return 1


def _video(video_id, age_hours, video_url="https://cdn.example.com/x/playlist.m3u8"):
    return {
        "id": video_id,
        "video_url": video_url,
        "caption": None,
        "user_id": "user-123",
        "created_at": NOW - timedelta(hours=age_hours),
    }


@pytest.mark.asyncio
async def test_only_videos_past_retention_are_deleted(fake_storage):
    repository = ExpiryRepository([_video("old", 80), _video("fresh", 10)])
    job = ExpiredVideoCleanupJob(fake_storage, retention_hours=72, repository=repository)

    result = await job.run_cleanup(now=NOW)

    assert repository.cutoffs == [NOW - timedelta(hours=72)]
    assert result["deleted_count"] == 1
    assert result["failed_count"] == 0
    assert repository.deleted == ["old"]
    assert result["details"][0]["age_hours"] == 80.0


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_sweep(fake_storage):
    repository = ExpiryRepository([_video("a", 100), _video("b", 90), _video("c", 80)])
    repository.fail_for = {"b"}
    job = ExpiredVideoCleanupJob(fake_storage, repository=repository)

    result = await job.run_cleanup(now=NOW)

    assert result["success"] is True
    assert result["deleted_count"] == 2
    assert result["failed_count"] == 1
    assert repository.deleted == ["a", "c"]


@pytest.mark.asyncio
async def test_storage_failure_still_deletes_row(fake_storage):
    fake_storage.delete_error = StorageServiceError("Storage delete failed (HTTP 500)", 500)
    repository = ExpiryRepository([_video("old", 100)])
    job = ExpiredVideoCleanupJob(fake_storage, repository=repository)

    result = await job.run_cleanup(now=NOW)

    assert repository.deleted == ["old"]
    assert result["details"][0]["asset_deleted"] is False
    assert result["details"][0]["success"] is True


@pytest.mark.asyncio
async def test_concurrent_run_is_skipped(fake_storage):
    job = ExpiredVideoCleanupJob(fake_storage, repository=ExpiryRepository([]))
    job.is_running = True

    result = await job.run_cleanup(now=NOW)

    assert result == {"success": False, "error": "Already running"}
