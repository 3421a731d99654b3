"""Plugins that raise actionable alerts with a remediation playbook."""

from datetime import timedelta

from services.insight_plugins import daily_ctr_totals
from services.insights import AlertSpec, InsightContext, InsightItem

CTR_DROP_RATIO = 0.8
GAP_HIT_MIN_SCORE = 5
HIT_LOOKBACK_DAYS = 3


class CtrDropPlugin:
    """CTR of the last 3 days against the 3 days before."""

    name = "CtrDrop"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        totals = await daily_ctr_totals(ctx)
        recent, previous = totals[-3:], totals[-6:-3]
        if len(previous) < 3:
            return []

        recent_imp = sum(t[2] for t in recent)
        prev_imp = sum(t[2] for t in previous)
        if recent_imp == 0 or prev_imp == 0:
            return []

        recent_ctr = sum(t[1] for t in recent) / recent_imp * 100
        prev_ctr = sum(t[1] for t in previous) / prev_imp * 100
        if recent_ctr >= prev_ctr * CTR_DROP_RATIO:
            return []

        drop = (prev_ctr - recent_ctr) / prev_ctr * 100
        return [InsightItem(
            type="alert_ctr",
            title="CTR Drop Alert",
            description="Significant drop in click-through rate detected.",
            evidence={"recent_ctr": recent_ctr, "previous_ctr": prev_ctr, "drop_percent": drop},
            entity_id=ctx.entity_id,
            alert=AlertSpec(
                severity="high",
                message=f"CTR dropped by {drop:.1f}% in last 3 days.",
                entity_id=ctx.entity_id,
                playbook_title="Fix CTR Drop",
                playbook_steps=[
                    "Check thumbnail contrast and readability.",
                    "Verify title matches thumbnail promise.",
                    "A/B test a new title variant.",
                ],
            ),
        )]


class CompetitorGapHitPlugin:
    """Recent competitor hits that land in one of this run's content gaps."""

    name = "CompetitorGapHit"

    async def analyze(self, ctx: InsightContext) -> list[InsightItem]:
        since = ctx.today - timedelta(days=HIT_LOOKBACK_DAYS)
        hits = await ctx.data.get_competitor_hits(since)
        if not hits:
            return []

        gaps = [
            insight.evidence
            for insight in await ctx.data.get_insights(run_id=ctx.run_id, insight_type="topic_gap")
            if insight.evidence.get("gap_score", 0) > GAP_HIT_MIN_SCORE
        ]

        items = []
        for momentum, video in hits:
            gap = next((g for g in gaps if _matches(g, video.id, video.title)), None)
            if gap is None:
                continue
            items.append(InsightItem(
                type="alert_competitor_gap_hit",
                title=f"Competitor hit in gap: {gap['name']}",
                description=f"Competitor hit detected in your content gap: {video.title}",
                evidence={
                    "video_id": video.id,
                    "title": video.title,
                    "velocity_24h": momentum.velocity_24h,
                    "gap_cluster_id": gap["cluster_id"],
                    "gap_score": gap["gap_score"],
                },
                entity_id=video.id,
                alert=AlertSpec(
                    severity="medium",
                    message=f"Competitor hit detected in your content gap: {video.title}",
                    entity_id=video.id,
                    playbook_title="Counter Competitor Hit",
                    playbook_steps=[
                        f"Watch competitor video: {video.title}",
                        "Identify missing angles or outdated info.",
                        'Script a response or "better version" video.',
                    ],
                ),
            ))
        return items


def _matches(gap: dict, video_id: str, title: str) -> bool:
    if video_id in gap.get("video_ids", []):
        return True
    keywords = gap.get("keywords") or []
    return bool(keywords) and keywords[0] in title.lower()
