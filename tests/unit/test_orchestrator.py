import pytest

from vidmod.features.video_moderation.domain.models import (
    FrameSample,
    ModerationJob,
    ModerationLabel,
    ModerationStatus,
)
from vidmod.features.video_moderation.pipeline.dispatch import ClassificationDispatcher
from vidmod.features.video_moderation.pipeline.disposition import DispositionHandler
from vidmod.features.video_moderation.pipeline.extraction import FrameExtractionError
from vidmod.features.video_moderation.pipeline.orchestrator import ModerationPipeline
from vidmod.features.video_moderation.services.retry import RetryPolicy
from vidmod.features.video_moderation.services.runner import ModerationJobRunner
from vidmod.services.storage.bunny_client import VideoDownloadError

TIMESTAMPS = [0, 5, 10, 15, 20, 25, 30]
JOB = ModerationJob(video_id="vid-1", video_url="https://vz-abc123.b-cdn.net/vid-1/playlist.m3u8")


class FakeExtractor:
    """Writes a frame file whose content names its timestamp."""

    def __init__(self, fail_at: int | None = None):
        self.fail_at = fail_at

    async def extract(self, video_path, timestamps, scratch):
        assert video_path.exists()
        frames = []
        for ts in timestamps:
            path = scratch.frame_path(ts)
            if ts == self.fail_at:
                raise FrameExtractionError(f"No frame produced at {ts}s", timestamp_seconds=ts)
            path.write_bytes(f"frame-{ts}".encode())
            frames.append(FrameSample(timestamp_seconds=ts, local_path=path))
        return frames


@pytest.fixture
def build_pipeline(tmp_path, fake_storage, fake_classifier, fake_repository):
    def _build(extractor=None):
        return ModerationPipeline(
            storage=fake_storage,
            extractor=extractor or FakeExtractor(),
            dispatcher=ClassificationDispatcher(fake_classifier),
            disposition=DispositionHandler(fake_storage, repository=fake_repository),
            scratch_dir=tmp_path,
            timestamps=TIMESTAMPS,
            repository=fake_repository,
        )

    return _build


@pytest.mark.asyncio
async def test_clean_video_is_approved(tmp_path, build_pipeline, fake_repository, fake_storage):
    outcome = await build_pipeline().run(JOB)

    assert outcome.status is ModerationStatus.APPROVED
    assert outcome.to_payload() == {
        "approved": True,
        "framesChecked": 7,
        "message": "Video approved successfully",
        "status": "approved",
        "deleted": False,
        "notificationSent": False,
    }
    assert fake_repository.names() == ["mark_approved"]
    assert fake_storage.deleted == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_violent_frame_rejects_and_tears_down(
    tmp_path, build_pipeline, fake_repository, fake_storage, fake_classifier
):
    fake_classifier.labels_by_frame = {b"frame-15": [ModerationLabel("Violence", "", 95.0)]}

    outcome = await build_pipeline().run(JOB)

    assert outcome.status is ModerationStatus.REJECTED
    assert outcome.approved is False
    assert outcome.frames_checked == 7
    assert outcome.reasons == ["Violence at 15s (95.00% confidence)"]
    assert outcome.deleted is True
    assert outcome.notification_sent is True
    assert fake_storage.deleted == [JOB.video_url]
    assert fake_repository.names().count("notify") == 1
    assert fake_repository.names()[-1] == "delete_video"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_download_404_leaves_video_pending_without_retry(
    tmp_path, build_pipeline, fake_repository, fake_storage
):
    fake_storage.download_error = VideoDownloadError("HTTP 404 Not Found", status_code=404)
    runner = ModerationJobRunner(build_pipeline(), RetryPolicy(jitter=False))

    outcome = await runner.run(JOB)

    assert outcome.status is ModerationStatus.PENDING
    assert outcome.frames_checked == 0
    assert [c[0] for c in fake_storage.calls] == ["download"]
    pending = fake_repository.calls[-1]
    assert pending[0] == "mark_pending"
    assert "download failed" in pending[2]
    assert "404" in pending[2]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_classification_error_leaves_video_pending(
    tmp_path, build_pipeline, fake_repository, fake_classifier
):
    fake_classifier.errors_by_frame = {b"frame-10": ConnectionResetError("connection reset")}

    outcome = await build_pipeline().run(JOB)

    assert outcome.status is ModerationStatus.PENDING
    assert outcome.approved is False
    assert fake_repository.names() == ["mark_pending"]
    assert "classification failed" in fake_repository.calls[0][2]
    assert "frame at 10s" in fake_repository.calls[0][2]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_short_video_leaves_video_pending(tmp_path, build_pipeline, fake_repository):
    outcome = await build_pipeline(FakeExtractor(fail_at=25)).run(JOB)

    assert outcome.status is ModerationStatus.PENDING
    assert "frame extraction failed" in fake_repository.calls[0][2]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_record_store_failure_propagates_and_cleans_scratch(
    tmp_path, build_pipeline, fake_repository
):
    async def broken_mark_approved(video_id, notes, result):
        raise ConnectionError("record store unavailable")

    fake_repository.mark_approved = broken_mark_approved

    with pytest.raises(ConnectionError):
        await build_pipeline().run(JOB)

    assert list(tmp_path.iterdir()) == []
