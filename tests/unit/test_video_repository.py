from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from psycopg.types.json import Jsonb

from vidmod.features.video_moderation.domain.models import VideoOwnership
from vidmod.features.video_moderation.repository import video_repository
from vidmod.features.video_moderation.repository.video_repository import (
    VideoModerationRepository,
)

MODULE = "vidmod.features.video_moderation.repository.video_repository"


@pytest.mark.asyncio
async def test_mark_pending_clears_approval(monkeypatch):
    execute_mock = AsyncMock(return_value=1)
    monkeypatch.setattr(f"{MODULE}.execute_query", execute_mock)

    assert await VideoModerationRepository.mark_pending("vid-1", "download failed") == 1

    query, params = execute_mock.await_args.args
    assert "is_approved = NULL" in query
    assert params == ("pending", "download failed", "vid-1")


@pytest.mark.asyncio
async def test_mark_approved_stores_audit_result(monkeypatch):
    execute_mock = AsyncMock(return_value=1)
    monkeypatch.setattr(f"{MODULE}.execute_query", execute_mock)

    await VideoModerationRepository.mark_approved("vid-1", "ok", {"approved": True})

    query, params = execute_mock.await_args.args
    assert "is_approved = TRUE" in query
    assert params[0] == "approved"
    assert isinstance(params[2], Jsonb)
    assert params[3] == "vid-1"


@pytest.mark.asyncio
async def test_mark_rejected_merges_into_existing_result(monkeypatch):
    execute_mock = AsyncMock(return_value=1)
    monkeypatch.setattr(f"{MODULE}.execute_query", execute_mock)

    await VideoModerationRepository.mark_rejected("vid-1", "Violence at 5s", {"approved": False})

    query, params = execute_mock.await_args.args
    assert "COALESCE(moderation_result, '{}'::jsonb) || %s" in query
    assert params[0] == "rejected"


@pytest.mark.asyncio
async def test_get_ownership_maps_row(monkeypatch):
    monkeypatch.setattr(
        f"{MODULE}.fetch_one",
        AsyncMock(
            return_value={"user_id": "user-123", "caption": "Beach", "notification_sent": True}
        ),
    )

    ownership = await VideoModerationRepository.get_ownership("vid-1")

    assert ownership == VideoOwnership(
        video_id="vid-1", user_id="user-123", caption="Beach", notification_sent=True
    )


@pytest.mark.asyncio
async def test_get_ownership_missing_row(monkeypatch):
    monkeypatch.setattr(f"{MODULE}.fetch_one", AsyncMock(return_value=None))

    assert await VideoModerationRepository.get_ownership("vid-1") is None


@pytest.mark.asyncio
async def test_notification_and_flag_share_a_transaction(monkeypatch):
    transaction_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(video_repository, "execute_transaction", transaction_mock)
    ownership = VideoOwnership(video_id="vid-1", user_id="user-123", caption=None)

    await VideoModerationRepository.record_rejection_notification(ownership, "removed")

    (statements,) = transaction_mock.await_args.args
    assert len(statements) == 2
    insert_query, insert_params = statements[0]
    assert "INSERT INTO notifications" in insert_query
    assert insert_params == ("user-123", "user-123", "video_rejected", "removed")
    flag_query, flag_params = statements[1]
    assert "UPDATE videos" in flag_query
    assert flag_params[1] == "vid-1"


@pytest.mark.asyncio
async def test_fetch_expired_videos_passes_cutoff(monkeypatch):
    fetch_mock = AsyncMock(return_value=[])
    monkeypatch.setattr(f"{MODULE}.fetch_all", fetch_mock)
    cutoff = datetime(2026, 1, 1, tzinfo=UTC)

    assert await VideoModerationRepository.fetch_expired_videos(cutoff, limit=10) == []
    assert fetch_mock.await_args.args[1] == (cutoff, 10)
