"""Tests for the repository's upsert and query semantics."""

from datetime import date, datetime, timedelta, timezone

import pytest

from models import SyncStatus
from services.data_provider import ChannelInfo, VideoInfo
from services.repository import trailing_window

DAY = date(2026, 2, 1)


async def seed_channel(repo):
    await repo.upsert_channel(ChannelInfo(id="ch1", title="Channel One", subscriber_count=10))
    await repo.upsert_videos("ch1", [
        VideoInfo(id="v1", title="First", published_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
        VideoInfo(id="v2", title="Second", published_at=datetime(2026, 1, 15, tzinfo=timezone.utc)),
    ])


@pytest.mark.asyncio
async def test_channel_upsert_is_idempotent(repo):
    await repo.upsert_channel(ChannelInfo(id="ch1", title="Old"))
    await repo.upsert_channel(ChannelInfo(id="ch1", title="New", subscriber_count=5))

    channel = await repo.get_channel("ch1")
    assert channel.title == "New"
    assert channel.subscriber_count == 5
    assert (await repo.get_primary_channel()).id == "ch1"


@pytest.mark.asyncio
async def test_videos_listed_newest_first(repo):
    await seed_channel(repo)
    assert [v.id for v in await repo.list_videos()] == ["v2", "v1"]


@pytest.mark.asyncio
async def test_day_metrics_overwrite_same_day(repo):
    await seed_channel(repo)
    await repo.upsert_channel_days("ch1", [{"day": DAY, "views": 10}])
    await repo.upsert_channel_days("ch1", [{"day": DAY, "views": 25}, {"day": DAY + timedelta(days=1), "views": 5}])

    stats = await repo.get_channel_stats("ch1", DAY, DAY + timedelta(days=1))
    assert [(s.day, s.views) for s in stats] == [(DAY, 25), (DAY + timedelta(days=1), 5)]


@pytest.mark.asyncio
async def test_video_stats_range_is_inclusive(repo):
    await seed_channel(repo)
    rows = [{"day": DAY + timedelta(days=i), "views": i} for i in range(5)]
    await repo.upsert_video_days("v1", rows)

    stats = await repo.get_video_stats("v1", DAY + timedelta(days=1), DAY + timedelta(days=3))
    assert [s.views for s in stats] == [1, 2, 3]
    assert (await repo.get_video_daily_views())["v1"] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_competitor_hits_join_videos(repo):
    await repo.add_competitor("comp1", "Rival")
    await repo.add_competitor("comp1", "Ignored")
    video = VideoInfo(id="cv1", title="Viral travel guide", views=5000)
    await repo.upsert_competitor_video("comp1", video)
    await repo.upsert_snapshot(video, DAY)
    await repo.upsert_momentum("cv1", {"day": DAY, "velocity_24h": 3000.0, "is_hit": True})
    await repo.upsert_momentum("cv1", {"day": DAY - timedelta(days=10), "velocity_24h": 100.0, "is_hit": True})

    competitors = await repo.list_competitors()
    assert [(c.id, c.title) for c in competitors] == [("comp1", "Rival")]

    hits = await repo.get_competitor_hits(since=DAY - timedelta(days=3))
    assert len(hits) == 1
    momentum, cv = hits[0]
    assert (momentum.velocity_24h, cv.title) == (3000.0, "Viral travel guide")

    titles = await repo.list_titles()
    assert ("cv1", "Viral travel guide", "competitor") in titles


@pytest.mark.asyncio
async def test_single_active_model(repo):
    for name, active in [("forecast_naive", True), ("forecast_ensemble", False)]:
        await repo.upsert_model(name, {"model_type": "forecast", "name": name, "metrics": {}, "is_active": active})
    await repo.deactivate_models("forecast")
    await repo.upsert_model("forecast_ensemble", {"model_type": "forecast", "name": "Ensemble", "metrics": {}, "is_active": True})

    active = await repo.get_active_model("forecast")
    assert active.model_id == "forecast_ensemble"
    assert [m.is_active for m in await repo.list_models("forecast")] == [True, False]


@pytest.mark.asyncio
async def test_sync_run_lifecycle(repo):
    run = await repo.create_sync_run()
    assert run.status == SyncStatus.RUNNING

    await repo.save_checkpoint(run.id, "video_metadata")
    await repo.record_perf_event("sync_video_metadata", 12.5, run.id)
    await repo.finish_sync_run(run.id, SyncStatus.FAILED, "NETWORK_ERROR", "boom")
    await repo.session.commit()

    await repo.session.refresh(run)
    assert run.status == SyncStatus.FAILED
    assert run.checkpoint == "video_metadata"
    assert run.error_code == "NETWORK_ERROR"
    assert run.finished_at is not None
    assert [e.name for e in await repo.list_perf_events(run.id)] == ["sync_video_metadata"]


@pytest.mark.asyncio
async def test_alert_read_flag(repo):
    run = await repo.create_sync_run()
    insight = await repo.insert_insight(run.id, "alert_ctr", "CTR Drop Alert", "desc", {"drop_percent": 30})
    alert = await repo.insert_alert(run.id, "alert_ctr", "high", "CTR dropped", insight_id=insight.id)

    assert [a.id for a in await repo.get_alerts(unread_only=True)] == [alert.id]
    assert await repo.mark_alert_read(alert.id) is True
    assert await repo.get_alerts(unread_only=True) == []
    assert await repo.mark_alert_read(9999) is False


def test_trailing_window():
    assert trailing_window(date(2026, 3, 28), 28) == (date(2026, 3, 1), date(2026, 3, 28))
