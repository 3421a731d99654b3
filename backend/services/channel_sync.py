"""Sync orchestrator - pulls channel data, refreshes analytics and runs insight plugins.

A run is a fixed list of stages executed in order. Each stage reports
progress, records its duration as a PerfEvent, commits and stores its name
as the run checkpoint. The checkpoint is for diagnostics only; a failed run
starts over from the first stage next time.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings
from errors import AppError, ErrorCode
from models.sync_run import SyncStatus
from services.data_provider import ChannelInfo, DataProvider, DateRange, MetricRow, VideoInfo
from services.insights import InsightContext, PluginRegistry
from services.model_registry import ModelRegistry
from services.momentum import Snapshot, compute_momentum
from services.nowcast import VideoViews, fit_growth_curves_by_bucket
from services.quality_score import QUALITY_WINDOW_DAYS, DayStats, compute_quality_score
from services.repository import Repository, trailing_window

logger = logging.getLogger(__name__)

T = TypeVar("T")

GROWTH_CURVE_CLUSTER = 0

CHANNEL_METRIC_FIELDS = {
    "views": "views",
    "estimatedMinutesWatched": "watch_time_minutes",
    "averageViewDuration": "avg_view_duration_sec",
    "subscribersGained": "subscribers_gained",
    "subscribersLost": "subscribers_lost",
    "likes": "likes",
    "comments": "comments",
    "shares": "shares",
    "videoThumbnailImpressions": "impressions",
    "videoThumbnailImpressionsClickRate": "ctr",
}

VIDEO_METRIC_FIELDS = {
    key: column for key, column in CHANNEL_METRIC_FIELDS.items()
    if column not in ("subscribers_gained", "subscribers_lost")
}

FLOAT_COLUMNS = {"watch_time_minutes", "avg_view_duration_sec", "ctr"}


@dataclass
class SyncProgress:
    stage: str
    progress: int
    message: str
    run_id: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SyncResult:
    run_id: int
    channel_id: str
    videos: int
    insights: int
    active_model: str | None = None


ProgressCallback = Callable[[SyncProgress], Awaitable[None] | None]


def pivot_metrics(rows: list[MetricRow], fields: dict[str, str]) -> list[dict]:
    """Turn (day, metric, value) triples into one dict per day. Unknown metrics are dropped."""
    by_day: dict[date, dict[str, Any]] = {}
    for row in rows:
        column = fields.get(row.metric)
        if column is None:
            continue
        day = by_day.setdefault(row.date, {"day": row.date})
        day[column] = float(row.value) if column in FLOAT_COLUMNS else int(row.value)
    return [by_day[d] for d in sorted(by_day)]


class SyncOrchestrator:
    """Runs the sync pipeline. Only one run may be active at a time."""

    def __init__(
        self,
        provider: DataProvider,
        session_factory: async_sessionmaker[AsyncSession],
        plugins: PluginRegistry,
        settings: Settings,
        on_progress: ProgressCallback | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.provider = provider
        self.session_factory = session_factory
        self.plugins = plugins
        self.settings = settings
        self.on_progress = on_progress
        self._today = today or (lambda: datetime.now(timezone.utc).date())
        self.is_running = False
        self.last_progress: SyncProgress | None = None

    async def _emit(self, progress: SyncProgress) -> None:
        self.last_progress = progress
        if self.on_progress is None:
            return
        result = self.on_progress(progress)
        if inspect.isawaitable(result):
            await result

    async def _stage(
        self,
        repo: Repository,
        run_id: int,
        name: str,
        progress: int,
        message: str,
        step: Callable[[], Awaitable[T]],
    ) -> T:
        await self._emit(SyncProgress(name, progress, message, run_id))
        started = time.perf_counter()
        result = await step()
        duration_ms = (time.perf_counter() - started) * 1000

        await repo.record_perf_event(f"sync_{name}", duration_ms, run_id)
        await repo.save_checkpoint(run_id, name)
        await repo.session.commit()
        logger.info(f"Sync run {run_id}: stage {name} done in {duration_ms:.0f}ms")
        return result

    def resolve_range(self, requested: DateRange | None) -> DateRange:
        """Requested range widened to cover the configured lookback through today."""
        today = self._today()
        floor = today - timedelta(days=self.settings.sync_lookback_days)
        if requested is None:
            return DateRange(start=floor, end=today)
        return DateRange(start=min(requested.start, floor), end=max(requested.end, today))

    async def run(self, date_range: DateRange | None = None, channel_id: str | None = None) -> SyncResult:
        if self.is_running:
            raise AppError(ErrorCode.SYNC_FAILED, "Sync already in progress")

        self.is_running = True
        try:
            return await self._run(self.resolve_range(date_range), channel_id)
        finally:
            self.is_running = False

    async def _run(self, sync_range: DateRange, channel_id: str | None) -> SyncResult:
        today = self._today()
        target = channel_id or self.settings.youtube_channel_id or "MINE"

        async with self.session_factory() as session:
            repo = Repository(session)
            run = await repo.create_sync_run()
            await session.commit()
            run_id = run.id
            logger.info(f"Sync run {run_id} started for {target} ({sync_range.start} to {sync_range.end})")
            started = time.perf_counter()

            try:
                channel = await self._stage(
                    repo, run_id, "channel_profile", 10, "Syncing channel profile...",
                    lambda: self._sync_channel(repo, target),
                )
                videos = await self._stage(
                    repo, run_id, "video_metadata", 20, "Syncing video metadata...",
                    lambda: self._sync_videos(repo, channel),
                )
                await self._stage(
                    repo, run_id, "channel_metrics", 40, "Syncing channel metrics...",
                    lambda: self._sync_channel_metrics(repo, channel, sync_range),
                )
                await self._stage(
                    repo, run_id, "video_metrics", 55, "Syncing video metrics...",
                    lambda: self._sync_video_metrics(repo, videos, sync_range),
                )
                active_model = await self._stage(
                    repo, run_id, "analytics", 70, "Computing analytics...",
                    lambda: self._refresh_analytics(repo, channel, today),
                )
                await self._stage(
                    repo, run_id, "competitors", 85, "Syncing competitors...",
                    lambda: self._sync_competitors(repo, today),
                )
                insights = await self._stage(
                    repo, run_id, "insights", 95, "Generating insights...",
                    lambda: self.plugins.run_all(
                        InsightContext(run_id, channel.id, DateRange(start=sync_range.start, end=today), repo)
                    ),
                )

                await repo.record_perf_event(
                    "sync_full_run", (time.perf_counter() - started) * 1000, run_id,
                    {"videos": len(videos), "insights": len(insights)},
                )
                await repo.save_checkpoint(run_id, "complete")
                await repo.finish_sync_run(run_id, SyncStatus.SUCCESS)
                await session.commit()
            except Exception as e:
                await session.rollback()
                error = AppError.from_exception(e)
                logger.exception(f"Sync run {run_id} failed: {error.code.value} {error.message}")
                await repo.finish_sync_run(run_id, SyncStatus.FAILED, error.code.value, error.message)
                await session.commit()
                await self._emit(SyncProgress("failed", 0, "Sync failed", run_id))
                if error is e:
                    raise
                raise error from e

        await self._emit(SyncProgress("complete", 100, "Sync complete", run_id))
        logger.info(f"Sync run {run_id} complete: {len(videos)} videos, {len(insights)} insights")
        return SyncResult(
            run_id=run_id,
            channel_id=channel.id,
            videos=len(videos),
            insights=len(insights),
            active_model=active_model,
        )

    # --- Stages ---

    async def _sync_channel(self, repo: Repository, channel_id: str) -> ChannelInfo:
        info = await self.provider.get_channel(channel_id)
        await repo.upsert_channel(info)
        return info

    async def _sync_videos(self, repo: Repository, channel: ChannelInfo) -> list[VideoInfo]:
        videos = await self.provider.list_videos(channel.id, self.settings.sync_max_videos)
        await repo.upsert_videos(channel.id, videos)
        return videos

    async def _sync_channel_metrics(self, repo: Repository, channel: ChannelInfo, sync_range: DateRange) -> int:
        rows = await self.provider.get_channel_daily_metrics(channel.id, sync_range)
        return await repo.upsert_channel_days(channel.id, pivot_metrics(rows, CHANNEL_METRIC_FIELDS))

    async def fetch_video_metrics(self, video_ids: list[str], sync_range: DateRange) -> dict[str, list[MetricRow]]:
        """Fetch per-video reports with a fixed pool of workers draining a shared queue.

        A video whose fetch still fails after retries (network or quota) is
        skipped; any other error stops all workers and propagates.
        """
        queue: asyncio.Queue[str] = asyncio.Queue()
        for video_id in video_ids:
            queue.put_nowait(video_id)
        results: dict[str, list[MetricRow]] = {}

        async def worker() -> None:
            while True:
                try:
                    video_id = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    fetched = await self.provider.get_video_daily_metrics([video_id], sync_range)
                    results[video_id] = fetched.get(video_id, [])
                except AppError as e:
                    if not e.retryable:
                        raise
                    logger.warning(f"Skipping metrics for video {video_id}: {e.message}")
                    results[video_id] = []

        workers = [
            asyncio.create_task(worker())
            for _ in range(max(1, self.settings.video_metrics_concurrency))
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for task in workers:
                task.cancel()
            raise
        return results

    async def _sync_video_metrics(self, repo: Repository, videos: list[VideoInfo], sync_range: DateRange) -> int:
        metrics = await self.fetch_video_metrics([v.id for v in videos], sync_range)
        total = 0
        for video_id, rows in metrics.items():
            total += await repo.upsert_video_days(video_id, pivot_metrics(rows, VIDEO_METRIC_FIELDS))
        return total

    async def _refresh_analytics(self, repo: Repository, channel: ChannelInfo, today: date) -> str | None:
        videos = await repo.list_videos()

        daily_views = await repo.get_video_daily_views()
        population = [
            VideoViews(v.id, v.duration_sec, daily_views[v.id])
            for v in videos if v.id in daily_views
        ]
        for bucket, points in fit_growth_curves_by_bucket(population).items():
            await repo.replace_growth_curve(GROWTH_CURVE_CLUSTER, bucket, points)

        start, end = trailing_window(today, QUALITY_WINDOW_DAYS)
        scored = 0
        for video in videos:
            stats = await repo.get_video_stats(video.id, start, end)
            result = compute_quality_score([
                DayStats(s.views, s.watch_time_minutes, s.likes, s.comments) for s in stats
            ])
            if result is None:
                continue
            await repo.upsert_quality_score(video.id, {
                "score": result.score,
                "velocity_score": result.velocity_score,
                "efficiency_score": result.efficiency_score,
                "conversion_score": result.conversion_score,
                "explanation": result.explanation,
            })
            scored += 1
        logger.info(f"Quality scores updated for {scored} videos")

        outcome = await ModelRegistry(repo).train_and_evaluate(channel.id, today)
        return outcome.active if outcome else None

    async def _sync_competitors(self, repo: Repository, today: date) -> int:
        competitors = await repo.list_competitors()
        hits = 0
        for competitor in competitors:
            info = await self.provider.get_public_channel(competitor.id)
            await repo.update_competitor(info)

            videos = await self.provider.get_public_videos(competitor.id, self.settings.competitor_max_videos)
            for video in videos:
                await repo.upsert_competitor_video(competitor.id, video)
                await repo.upsert_snapshot(video, today)

                snapshots = await repo.get_snapshots(video.id)
                result = compute_momentum([Snapshot(s.day, s.view_count) for s in snapshots], today)
                if result is None:
                    continue
                await repo.upsert_momentum(video.id, asdict(result))
                hits += int(result.is_hit)

        logger.info(f"Competitor refresh: {len(competitors)} channels, {hits} hits today")
        return hits
