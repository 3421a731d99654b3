"""Standard insight plugins."""

import logging

from services.anomaly import detect_anomalies, detect_trend_break
from services.cluster_naming import ClusterNamer
from services.forecasting import SeriesPoint
from services.insights import InsightContext, InsightItem
from services.topic_clustering import TitleDoc, cluster_titles, score_gaps

logger = logging.getLogger(__name__)

CTR_BENCHMARK = 2.0
SLEEPER_MIN_AGE_DAYS = 90
SLEEPER_MIN_VIEWS = 500
TOP_MOVER_MIN_VIEWS = 100


async def _channel_views(ctx: InsightContext) -> list[SeriesPoint]:
    stats = await ctx.data.get_channel_stats(ctx.entity_id, ctx.date_range.start, ctx.date_range.end)
    return [SeriesPoint(s.day, float(s.views)) for s in stats]


async def _video_totals(ctx: InsightContext) -> dict[str, dict]:
    """Per-video view, like and comment totals over the context range."""
    rows = await ctx.data.get_videos_stats(ctx.date_range.start, ctx.date_range.end)
    totals: dict[str, dict] = {}
    for row in rows:
        t = totals.setdefault(row.video_id, {"days": 0, "views": 0, "likes": 0, "comments": 0})
        t["days"] += 1
        t["views"] += row.views
        t["likes"] += row.likes
        t["comments"] += row.comments
    return totals


async def daily_ctr_totals(ctx: InsightContext) -> list[tuple]:
    """(day, views, impressions) summed over owned videos, in day order."""
    rows = await ctx.data.get_videos_stats(ctx.date_range.start, ctx.date_range.end)
    by_day: dict = {}
    for row in rows:
        views, impressions = by_day.get(row.day, (0, 0))
        by_day[row.day] = (views + row.views, impressions + row.impressions)
    return [(day, *by_day[day]) for day in sorted(by_day)]


class TopMoversPlugin:
    name = "TopMovers"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        videos = {v.id: v for v in await ctx.data.list_videos()}
        movers = [
            {"video_id": vid, "title": videos[vid].title, "total_views": t["views"]}
            for vid, t in (await _video_totals(ctx)).items()
            if vid in videos and t["days"] >= 2 and t["views"] > TOP_MOVER_MIN_VIEWS
        ]
        top = sorted(movers, key=lambda m: m["total_views"], reverse=True)[:3]
        if not top:
            return []
        return [InsightItem(
            type="top_movers",
            title="Top Performing Videos",
            description=f"Top videos by views in this period: {', '.join(m['title'] for m in top)}",
            evidence=top,
        )]


class CtrBottleneckPlugin:
    name = "CtrBottleneck"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        totals = await daily_ctr_totals(ctx)
        views = sum(t[1] for t in totals)
        impressions = sum(t[2] for t in totals)
        if impressions == 0:
            return []

        ctr = views / impressions * 100
        if ctr >= CTR_BENCHMARK:
            return []
        return [InsightItem(
            type="bottleneck",
            title="Low CTR Detected",
            description=(
                f"CTR is {ctr:.1f}%, which is below the {CTR_BENCHMARK:.0f}% benchmark. "
                "Consider improving thumbnails."
            ),
            evidence={"impressions": impressions, "views": views, "ctr": ctr},
            entity_id=ctx.entity_id,
        )]


class AnomalyDaysPlugin:
    name = "AnomalyDays"

    def __init__(self, sensitivity: float = 2.5):
        self.sensitivity = sensitivity

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        anomalies = detect_anomalies(await _channel_views(ctx), self.sensitivity)
        if not anomalies:
            return []
        critical = sum(1 for a in anomalies if a.severity == "critical")
        return [InsightItem(
            type="anomaly",
            title="Traffic Anomalies Detected",
            description=f"Found {len(anomalies)} days with unusual traffic ({critical} critical).",
            evidence=[
                {
                    "day": a.date.isoformat(),
                    "views": a.value,
                    "z_score": round(a.z_score, 2),
                    "type": a.type,
                    "severity": a.severity,
                }
                for a in anomalies
            ],
            entity_id=ctx.entity_id,
        )]


class TrendBreakPlugin:
    name = "TrendBreak"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        found = detect_trend_break(await _channel_views(ctx))
        if found is None:
            return []
        direction = "up" if found.mean_after > found.mean_before else "down"
        return [InsightItem(
            type="trend_break",
            title=f"Daily views shifted {direction}",
            description=(
                f"Average daily views moved from {found.mean_before:.0f} to {found.mean_after:.0f} "
                f"({found.change_percent:+.1f}%) starting {found.break_date.isoformat()}."
            ),
            evidence={
                "break_date": found.break_date.isoformat(),
                "mean_before": found.mean_before,
                "mean_after": found.mean_after,
                "change_percent": found.change_percent,
            },
            entity_id=ctx.entity_id,
        )]


class SleepersPlugin:
    name = "Sleepers"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        totals = await _video_totals(ctx)
        sleepers = []
        for video in await ctx.data.list_videos():
            if video.published_at is None:
                continue
            age_days = (ctx.today - video.published_at.date()).days
            recent = totals.get(video.id, {}).get("views", 0)
            if age_days > SLEEPER_MIN_AGE_DAYS and recent > SLEEPER_MIN_VIEWS:
                sleepers.append({
                    "video_id": video.id,
                    "title": video.title,
                    "recent_views": recent,
                    "age_days": age_days,
                })
        if not sleepers:
            return []
        sleepers.sort(key=lambda s: s["recent_views"], reverse=True)
        return [InsightItem(
            type="sleepers",
            title="Sleeper Videos",
            description=f"{len(sleepers)} older videos are gaining traction.",
            evidence=sleepers[:5],
        )]


class QualityRankingPlugin:
    """Ranks videos by views * 0.1 + likes * 10 + comments * 20."""

    name = "QualityRanking"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        videos = {v.id: v for v in await ctx.data.list_videos()}
        scores = []
        for vid, t in (await _video_totals(ctx)).items():
            score = t["views"] * 0.1 + t["likes"] * 10 + t["comments"] * 20
            if vid in videos and score > 0:
                scores.append({"video_id": vid, "title": videos[vid].title, "score": score})
        if not scores:
            return []
        scores.sort(key=lambda s: s["score"], reverse=True)
        return [InsightItem(
            type="quality_rank",
            title="Engagement Quality Ranking",
            description="Top videos based on engagement weighted score.",
            evidence=scores[:5],
        )]


class TopicGapsPlugin:
    """Clusters owned and competitor titles and reports topics competitors dominate."""

    name = "TopicGaps"

    def __init__(self, namer: ClusterNamer | None = None, seed: int = 42):
        self.namer = namer
        self.seed = seed

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        docs = [TitleDoc(vid, title, owner) for vid, title, owner in await ctx.data.list_titles()]
        clusters = cluster_titles(docs, self.seed)
        if not clusters:
            logger.info(f"Skipping topic gaps: only {len(docs)} titles available")
            return []
        by_id = {c.cluster_id: c for c in clusters}

        items = []
        for gap in score_gaps(clusters):
            name = await self.namer.name(by_id[gap.cluster_id]) if self.namer else gap.name
            items.append(InsightItem(
                type="topic_gap",
                title=f"Content gap: {name}",
                description=gap.reason,
                evidence={
                    "cluster_id": gap.cluster_id,
                    "name": name,
                    "competitor_share": gap.competitor_share,
                    "gap_score": gap.gap_score,
                    "member_count": gap.member_count,
                    "keywords": gap.keywords,
                    "video_ids": gap.video_ids,
                },
            ))
        return items
