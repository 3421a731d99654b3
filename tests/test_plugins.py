"""Tests for the insight registry and the standard plugins."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from services.alert_plugins import CompetitorGapHitPlugin, CtrDropPlugin
from services.data_provider import ChannelInfo, DateRange, VideoInfo
from services.insight_plugins import (
    CtrBottleneckPlugin,
    SleepersPlugin,
    TopicGapsPlugin,
    TopMoversPlugin,
)
from services.insights import AlertSpec, InsightContext, InsightItem, PluginRegistry, default_registry

TODAY = date(2026, 3, 2)
START = TODAY - timedelta(days=5)


class FailingPlugin:
    name = "Failing"

    async def analyze(self, ctx):
        raise RuntimeError("plugin bug")


class StaticPlugin:
    name = "Static"

    async def analyze(self, ctx):
        return [InsightItem(
            type="static",
            title="Static insight",
            description="Always here",
            evidence={"value": 1},
            alert=AlertSpec("high", "Look at this", playbook_title="Do it", playbook_steps=["step"]),
        )]


class NotePlugin:
    name = "Note"

    async def analyze(self, ctx):
        return [InsightItem(type="note", title="Note", description="Plain note", evidence={})]


@pytest_asyncio.fixture
async def run_id(repo):
    run = await repo.create_sync_run()
    return run.id


@pytest.fixture
def ctx(repo, run_id):
    return InsightContext(run_id, "ch1", DateRange(start=START, end=TODAY), repo)


async def seed_videos(repo, daily):
    """``daily`` maps video id -> list of (views, impressions, likes) per day from START."""
    await repo.upsert_channel(ChannelInfo(id="ch1", title="Channel"))
    await repo.upsert_videos("ch1", [
        VideoInfo(id="old", title="Old evergreen", published_at=datetime(2025, 6, 1, tzinfo=timezone.utc)),
        VideoInfo(id="new", title="Fresh upload", published_at=datetime(2026, 2, 20, tzinfo=timezone.utc)),
    ])
    for video_id, rows in daily.items():
        await repo.upsert_video_days(video_id, [
            {"day": START + timedelta(days=i), "views": v, "impressions": imp, "likes": likes}
            for i, (v, imp, likes) in enumerate(rows)
        ])


class TestRegistry:
    @pytest.mark.asyncio
    async def test_failing_plugin_does_not_block_others(self, repo, ctx):
        registry = PluginRegistry([FailingPlugin(), StaticPlugin()])
        produced = await registry.run_all(ctx)

        assert [i.type for i in produced] == ["static"]
        insights = await repo.get_insights(run_id=ctx.run_id)
        assert [i.insight_type for i in insights] == ["static"]

        alerts = await repo.get_alerts()
        assert len(alerts) == 1
        assert alerts[0].insight_id == insights[0].id
        assert alerts[0].action == {"title": "Do it", "steps": ["step"]}

    @pytest.mark.asyncio
    async def test_failed_write_does_not_block_others(self):
        data = MagicMock()
        data.insert_insight = AsyncMock(side_effect=[RuntimeError("db write failed"), MagicMock(id=7)])
        data.insert_alert = AsyncMock()
        ctx = InsightContext(1, "ch1", DateRange(start=START, end=TODAY), data)

        produced = await PluginRegistry([NotePlugin(), StaticPlugin()]).run_all(ctx)

        assert [i.type for i in produced] == ["static"]
        assert data.insert_insight.await_count == 2
        data.insert_alert.assert_awaited_once()
        assert data.insert_alert.await_args.kwargs["insight_id"] == 7

    def test_default_order(self):
        assert default_registry().names == [
            "TopMovers", "CtrBottleneck", "AnomalyDays", "TrendBreak", "Sleepers",
            "QualityRanking", "TopicGaps", "CtrDrop", "CompetitorGapHit",
        ]

    @pytest.mark.asyncio
    async def test_default_registry_on_empty_data(self, ctx):
        assert await default_registry().run_all(ctx) == []


class TestInsightPlugins:
    @pytest.mark.asyncio
    async def test_top_movers_and_sleepers(self, repo, ctx):
        await seed_videos(repo, {
            "old": [(400, 10000, 5)] * 3,
            "new": [(80, 1000, 1)] * 3,
        })

        movers = await TopMoversPlugin().analyze(ctx)
        assert [m["video_id"] for m in movers[0].evidence] == ["old", "new"]

        sleepers = await SleepersPlugin().analyze(ctx)
        assert [s["video_id"] for s in sleepers[0].evidence] == ["old"]
        assert sleepers[0].evidence[0]["recent_views"] == 1200

    @pytest.mark.asyncio
    async def test_ctr_bottleneck(self, repo, ctx):
        await seed_videos(repo, {"old": [(10, 1000, 0)] * 3})
        items = await CtrBottleneckPlugin().analyze(ctx)
        assert items[0].type == "bottleneck"
        assert items[0].evidence["ctr"] == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_healthy_ctr_is_quiet(self, repo, ctx):
        await seed_videos(repo, {"old": [(100, 1000, 0)] * 3})
        assert await CtrBottleneckPlugin().analyze(ctx) == []

    @pytest.mark.asyncio
    async def test_topic_gaps_need_titles(self, ctx):
        assert await TopicGapsPlugin().analyze(ctx) == []


class TestAlertPlugins:
    @pytest.mark.asyncio
    async def test_ctr_drop(self, repo, ctx):
        await seed_videos(repo, {"old": [(100, 2000, 0)] * 3 + [(50, 2000, 0)] * 3})
        items = await CtrDropPlugin().analyze(ctx)

        assert len(items) == 1
        item = items[0]
        assert item.type == "alert_ctr"
        assert item.evidence["drop_percent"] == pytest.approx(50.0)
        assert item.alert.severity == "high"
        assert item.alert.action()["title"] == "Fix CTR Drop"

    @pytest.mark.asyncio
    async def test_ctr_drop_needs_six_days(self, repo, ctx):
        await seed_videos(repo, {"old": [(100, 2000, 0)] * 2 + [(10, 2000, 0)] * 3})
        assert await CtrDropPlugin().analyze(ctx) == []

    @pytest.mark.asyncio
    async def test_competitor_hit_in_gap(self, repo, ctx):
        await repo.add_competitor("comp1")
        video = VideoInfo(id="cv1", title="Kyoto travel guide", views=90000)
        await repo.upsert_competitor_video("comp1", video)
        await repo.upsert_momentum("cv1", {"day": TODAY, "velocity_24h": 45000.0, "is_hit": True})
        await repo.insert_insight(ctx.run_id, "topic_gap", "Content gap: travel", "Competitors own 100% of this topic.", {
            "cluster_id": 2, "name": "travel, guide", "gap_score": 10.0,
            "keywords": ["travel"], "video_ids": ["cv9"],
        })

        items = await CompetitorGapHitPlugin().analyze(ctx)
        assert len(items) == 1
        assert items[0].evidence["gap_cluster_id"] == 2
        assert items[0].alert.severity == "medium"
        assert items[0].alert.action()["title"] == "Counter Competitor Hit"

    @pytest.mark.asyncio
    async def test_weak_gap_is_ignored(self, repo, ctx):
        await repo.add_competitor("comp1")
        await repo.upsert_competitor_video("comp1", VideoInfo(id="cv1", title="Kyoto travel guide"))
        await repo.upsert_momentum("cv1", {"day": TODAY, "velocity_24h": 45000.0, "is_hit": True})
        await repo.insert_insight(ctx.run_id, "topic_gap", "Content gap", "", {
            "cluster_id": 2, "name": "travel", "gap_score": 4.0, "keywords": ["travel"], "video_ids": ["cv1"],
        })
        assert await CompetitorGapHitPlugin().analyze(ctx) == []
