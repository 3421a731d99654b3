"""Data access for the sync pipeline and the analytics API.

Upserts select by natural key and update in place or add a new row, so
re-syncing the same (entity, day) leaves one row with the latest values.
Batches are de-duplicated by key (last value wins) and flushed; the caller
commits.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    Alert,
    Channel,
    ChannelDayMetric,
    CompetitorChannel,
    CompetitorSnapshot,
    CompetitorVideo,
    ForecastModelRecord,
    GrowthCurvePoint,
    Insight,
    MomentumRecord,
    PerfEvent,
    QualityScore,
    SyncRun,
    SyncStatus,
    Video,
    VideoDayMetric,
)
from services.data_provider import ChannelInfo, VideoInfo

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _assign(row, values: dict) -> None:
    for key, value in values.items():
        setattr(row, key, value)


class Repository:
    """Session-scoped data-access handle."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _upsert(self, model, key: tuple, values: dict):
        row = await self.session.get(model, key if len(key) > 1 else key[0])
        if row is None:
            pk_names = [col.key for col in model.__mapper__.primary_key]
            row = model(**dict(zip(pk_names, key)), **values)
            self.session.add(row)
        else:
            _assign(row, values)
        return row

    # --- Channels ---

    async def upsert_channel(self, info: ChannelInfo) -> Channel:
        row = await self._upsert(Channel, (info.id,), {
            "title": info.title,
            "created_at": info.created_at,
            "subscriber_count": info.subscriber_count,
            "video_count": info.video_count,
            "view_count": info.view_count,
            "thumbnail_url": info.thumbnail_url,
            "last_synced_at": _now(),
        })
        await self.session.flush()
        return row

    async def get_channel(self, channel_id: str) -> Channel | None:
        return await self.session.get(Channel, channel_id)

    async def get_primary_channel(self) -> Channel | None:
        result = await self.session.execute(
            select(Channel).order_by(desc(Channel.last_synced_at)).limit(1)
        )
        return result.scalar_one_or_none()

    # --- Videos ---

    async def upsert_videos(self, channel_id: str, videos: Iterable[VideoInfo]) -> int:
        batch = {v.id: v for v in videos}
        for video in batch.values():
            await self._upsert(Video, (video.id,), {
                "channel_id": channel_id,
                "title": video.title,
                "description": video.description,
                "published_at": video.published_at,
                "duration_sec": video.duration_sec,
                "thumbnail_url": video.thumbnail_url,
                "last_synced_at": _now(),
            })
        await self.session.flush()
        return len(batch)

    async def list_videos(self, channel_id: str | None = None) -> list[Video]:
        query = select(Video).order_by(desc(Video.published_at))
        if channel_id:
            query = query.where(Video.channel_id == channel_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_video(self, video_id: str) -> Video | None:
        return await self.session.get(Video, video_id)

    # --- Daily facts ---

    async def upsert_channel_days(self, channel_id: str, rows: Iterable[dict]) -> int:
        batch = {row["day"]: row for row in rows}
        for day, values in batch.items():
            fields = {k: v for k, v in values.items() if k != "day"}
            await self._upsert(ChannelDayMetric, (channel_id, day), fields)
        await self.session.flush()
        return len(batch)

    async def upsert_video_days(self, video_id: str, rows: Iterable[dict]) -> int:
        batch = {row["day"]: row for row in rows}
        for day, values in batch.items():
            fields = {k: v for k, v in values.items() if k != "day"}
            await self._upsert(VideoDayMetric, (video_id, day), fields)
        await self.session.flush()
        return len(batch)

    async def get_channel_stats(self, channel_id: str, start: date, end: date) -> list[ChannelDayMetric]:
        result = await self.session.execute(
            select(ChannelDayMetric)
            .where(
                ChannelDayMetric.channel_id == channel_id,
                ChannelDayMetric.day >= start,
                ChannelDayMetric.day <= end,
            )
            .order_by(ChannelDayMetric.day)
        )
        return list(result.scalars().all())

    async def get_video_stats(self, video_id: str, start: date, end: date) -> list[VideoDayMetric]:
        result = await self.session.execute(
            select(VideoDayMetric)
            .where(
                VideoDayMetric.video_id == video_id,
                VideoDayMetric.day >= start,
                VideoDayMetric.day <= end,
            )
            .order_by(VideoDayMetric.day)
        )
        return list(result.scalars().all())

    async def get_videos_stats(self, start: date, end: date) -> list[VideoDayMetric]:
        """Daily rows for every owned video in the range, ordered by video then day."""
        result = await self.session.execute(
            select(VideoDayMetric)
            .where(VideoDayMetric.day >= start, VideoDayMetric.day <= end)
            .order_by(VideoDayMetric.video_id, VideoDayMetric.day)
        )
        return list(result.scalars().all())

    async def get_video_daily_views(self) -> dict[str, list[float]]:
        """All-time daily views per video, in day order."""
        result = await self.session.execute(
            select(VideoDayMetric.video_id, VideoDayMetric.views)
            .order_by(VideoDayMetric.video_id, VideoDayMetric.day)
        )
        views: dict[str, list[float]] = {}
        for video_id, count in result.all():
            views.setdefault(video_id, []).append(count)
        return views

    # --- Competitors ---

    async def add_competitor(self, channel_id: str, title: str = "") -> CompetitorChannel:
        row = await self.session.get(CompetitorChannel, channel_id)
        if row is None:
            row = CompetitorChannel(id=channel_id, title=title)
            self.session.add(row)
            await self.session.flush()
        return row

    async def list_competitors(self) -> list[CompetitorChannel]:
        result = await self.session.execute(select(CompetitorChannel).order_by(CompetitorChannel.added_at))
        return list(result.scalars().all())

    async def update_competitor(self, info: ChannelInfo) -> None:
        await self._upsert(CompetitorChannel, (info.id,), {
            "title": info.title,
            "subscriber_count": info.subscriber_count,
            "last_synced_at": _now(),
        })
        await self.session.flush()

    async def upsert_competitor_video(self, channel_id: str, video: VideoInfo) -> CompetitorVideo:
        row = await self._upsert(CompetitorVideo, (video.id,), {
            "channel_id": channel_id,
            "title": video.title,
            "published_at": video.published_at,
            "duration_sec": video.duration_sec,
            "view_count": video.views,
            "like_count": video.likes,
            "comment_count": video.comments,
            "last_synced_at": _now(),
        })
        await self.session.flush()
        return row

    async def list_competitor_videos(self) -> list[CompetitorVideo]:
        result = await self.session.execute(select(CompetitorVideo).order_by(desc(CompetitorVideo.published_at)))
        return list(result.scalars().all())

    async def upsert_snapshot(self, video: VideoInfo, day: date) -> None:
        await self._upsert(CompetitorSnapshot, (video.id, day), {
            "view_count": video.views,
            "like_count": video.likes,
            "comment_count": video.comments,
            "captured_at": _now(),
        })
        await self.session.flush()

    async def get_snapshots(self, video_id: str) -> list[CompetitorSnapshot]:
        result = await self.session.execute(
            select(CompetitorSnapshot)
            .where(CompetitorSnapshot.video_id == video_id)
            .order_by(CompetitorSnapshot.day)
        )
        return list(result.scalars().all())

    async def upsert_momentum(self, video_id: str, values: dict) -> None:
        day = values["day"]
        fields = {k: v for k, v in values.items() if k != "day"}
        fields["computed_at"] = _now()
        await self._upsert(MomentumRecord, (video_id, day), fields)
        await self.session.flush()

    async def get_competitor_hits(self, since: date, limit: int = 50) -> list[tuple[MomentumRecord, CompetitorVideo]]:
        result = await self.session.execute(
            select(MomentumRecord, CompetitorVideo)
            .join(CompetitorVideo, CompetitorVideo.id == MomentumRecord.video_id)
            .where(MomentumRecord.is_hit.is_(True), MomentumRecord.day >= since)
            .order_by(desc(MomentumRecord.velocity_24h))
            .limit(limit)
        )
        return [tuple(row) for row in result.all()]

    # --- Derived analytics ---

    async def replace_growth_curve(self, cluster_id: int, bucket: str, points: Iterable) -> int:
        await self.session.execute(
            delete(GrowthCurvePoint).where(
                GrowthCurvePoint.cluster_id == cluster_id,
                GrowthCurvePoint.duration_bucket == bucket,
            )
        )
        count = 0
        for point in points:
            self.session.add(GrowthCurvePoint(
                cluster_id=cluster_id,
                duration_bucket=bucket,
                day=point.day,
                median_pct=point.median_pct,
                p25_pct=point.p25_pct,
                p75_pct=point.p75_pct,
                sample_size=point.sample_size,
            ))
            count += 1
        await self.session.flush()
        return count

    async def get_growth_curve(self, cluster_id: int = 0, bucket: str = "all") -> list[GrowthCurvePoint]:
        result = await self.session.execute(
            select(GrowthCurvePoint)
            .where(GrowthCurvePoint.cluster_id == cluster_id, GrowthCurvePoint.duration_bucket == bucket)
            .order_by(GrowthCurvePoint.day)
        )
        return list(result.scalars().all())

    async def upsert_quality_score(self, video_id: str, values: dict) -> None:
        await self._upsert(QualityScore, (video_id,), {**values, "computed_at": _now()})
        await self.session.flush()

    async def get_quality_ranking(self, limit: int = 20) -> list[tuple[QualityScore, Video]]:
        result = await self.session.execute(
            select(QualityScore, Video)
            .join(Video, Video.id == QualityScore.video_id)
            .order_by(desc(QualityScore.score))
            .limit(limit)
        )
        return [tuple(row) for row in result.all()]

    async def list_titles(self) -> list[tuple[str, str, str]]:
        """(id, title, owner) for owned and competitor videos."""
        own = await self.session.execute(select(Video.id, Video.title))
        competitors = await self.session.execute(select(CompetitorVideo.id, CompetitorVideo.title))
        return (
            [(vid, title, "user") for vid, title in own.all()]
            + [(vid, title, "competitor") for vid, title in competitors.all()]
        )

    # --- Model registry ---

    async def deactivate_models(self, model_type: str) -> None:
        await self.session.execute(
            update(ForecastModelRecord)
            .where(ForecastModelRecord.model_type == model_type)
            .values(is_active=False)
        )

    async def upsert_model(self, model_id: str, values: dict) -> None:
        await self._upsert(ForecastModelRecord, (model_id,), {**values, "trained_at": _now()})
        await self.session.flush()

    async def get_active_model(self, model_type: str) -> ForecastModelRecord | None:
        result = await self.session.execute(
            select(ForecastModelRecord).where(
                ForecastModelRecord.model_type == model_type,
                ForecastModelRecord.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def list_models(self, model_type: str | None = None) -> list[ForecastModelRecord]:
        query = select(ForecastModelRecord).order_by(ForecastModelRecord.model_id)
        if model_type:
            query = query.where(ForecastModelRecord.model_type == model_type)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    # --- Insights and alerts ---

    async def insert_insight(self, run_id: int, insight_type: str, title: str, description: str,
                             evidence: dict, entity_id: str | None = None) -> Insight:
        row = Insight(
            run_id=run_id,
            insight_type=insight_type,
            title=title,
            description=description,
            evidence=evidence,
            entity_id=entity_id,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def insert_alert(self, run_id: int, alert_type: str, severity: str, message: str,
                           entity_id: str | None = None, action: dict | None = None,
                           insight_id: int | None = None) -> Alert:
        row = Alert(
            run_id=run_id,
            insight_id=insight_id,
            alert_type=alert_type,
            severity=severity,
            message=message,
            entity_id=entity_id,
            action=action or {},
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_insights(self, run_id: int | None = None, insight_type: str | None = None,
                           limit: int = 100) -> list[Insight]:
        query = select(Insight).order_by(desc(Insight.id)).limit(limit)
        if run_id is not None:
            query = query.where(Insight.run_id == run_id)
        if insight_type:
            query = query.where(Insight.insight_type == insight_type)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_alerts(self, unread_only: bool = False, limit: int = 100) -> list[Alert]:
        query = select(Alert).order_by(desc(Alert.id)).limit(limit)
        if unread_only:
            query = query.where(Alert.is_read.is_(False))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_alert_read(self, alert_id: int) -> bool:
        alert = await self.session.get(Alert, alert_id)
        if alert is None:
            return False
        alert.is_read = True
        await self.session.flush()
        return True

    # --- Sync runs ---

    async def create_sync_run(self) -> SyncRun:
        run = SyncRun(status=SyncStatus.RUNNING)
        self.session.add(run)
        await self.session.flush()
        return run

    async def save_checkpoint(self, run_id: int, label: str) -> None:
        await self.session.execute(
            update(SyncRun).where(SyncRun.id == run_id).values(checkpoint=label)
        )

    async def finish_sync_run(self, run_id: int, status: SyncStatus,
                              error_code: str | None = None, error_message: str | None = None) -> None:
        await self.session.execute(
            update(SyncRun)
            .where(SyncRun.id == run_id)
            .values(status=status, finished_at=_now(), error_code=error_code, error_message=error_message)
        )

    async def get_sync_run(self, run_id: int) -> SyncRun | None:
        return await self.session.get(SyncRun, run_id)

    async def list_sync_runs(self, limit: int = 20) -> list[SyncRun]:
        result = await self.session.execute(select(SyncRun).order_by(desc(SyncRun.id)).limit(limit))
        return list(result.scalars().all())

    async def record_perf_event(self, name: str, duration_ms: float, run_id: int | None = None,
                                meta: dict | None = None) -> None:
        self.session.add(PerfEvent(run_id=run_id, name=name, duration_ms=duration_ms, meta=meta or {}))
        await self.session.flush()

    async def list_perf_events(self, run_id: int) -> list[PerfEvent]:
        result = await self.session.execute(
            select(PerfEvent).where(PerfEvent.run_id == run_id).order_by(PerfEvent.id)
        )
        return list(result.scalars().all())


def trailing_window(end: date, days: int) -> tuple[date, date]:
    """(start, end) covering ``days`` days ending on ``end``."""
    return end - timedelta(days=days - 1), end
