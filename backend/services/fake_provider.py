"""Deterministic offline provider for development and tests.

Data is generated from a seed derived from the entity id, so repeated
calls return identical values. JSON fixtures in ``fixtures_dir`` override
the generated data when present.
"""

import json
import logging
import random
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from services.data_provider import ChannelInfo, DateRange, MetricRow, VideoInfo

logger = logging.getLogger(__name__)

FAKE_CHANNEL_ID = "fake_channel"

TOPICS = [
    "home workout routine", "budget meal prep", "python programming tutorial",
    "travel vlog japan", "camera gear review", "productivity tips morning",
]


def _rng(*parts: object) -> random.Random:
    return random.Random("|".join(str(p) for p in parts))


def _days(date_range: DateRange) -> list[date]:
    count = (date_range.end - date_range.start).days
    return [date_range.start + timedelta(days=i) for i in range(count + 1)]


class FakeProvider:
    """DataProvider returning seeded synthetic data."""

    def __init__(self, fixtures_dir: str | None = None, today: date | None = None):
        self.fixtures_dir = Path(fixtures_dir) if fixtures_dir else None
        self.today = today

    def _today(self) -> date:
        return self.today or datetime.now(timezone.utc).date()

    def _read_fixture(self, filename: str, adapter: TypeAdapter, fallback):
        if self.fixtures_dir is None:
            return fallback
        path = self.fixtures_dir / filename
        if not path.exists():
            return fallback
        try:
            return adapter.validate_python(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, ValidationError) as e:
            logger.error(f"Error reading fixture {filename}: {e}")
            return fallback

    async def get_channel(self, channel_id: str) -> ChannelInfo:
        resolved = FAKE_CHANNEL_ID if channel_id in ("", "MINE") else channel_id
        fallback = ChannelInfo(
            id=resolved,
            title="Fake Channel",
            subscriber_count=12000,
            video_count=12,
            view_count=850000,
            created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )
        return self._read_fixture(f"channel_{resolved}.json", TypeAdapter(ChannelInfo), fallback)

    async def list_videos(self, channel_id: str, max_results: int = 50) -> list[VideoInfo]:
        today = self._today()
        videos = []
        for i in range(min(12, max_results)):
            rng = _rng(channel_id, "video", i)
            topic = TOPICS[i % len(TOPICS)]
            videos.append(VideoInfo(
                id=f"video_{i}",
                title=f"{topic.title()} part {i // len(TOPICS) + 1}",
                published_at=datetime.combine(today - timedelta(days=7 * i + 3), datetime.min.time(), timezone.utc),
                duration_sec=45 if i % 4 == 0 else rng.randint(300, 1800),
                views=rng.randint(500, 50000),
            ))
        fallback = videos[:max_results]
        return self._read_fixture(f"videos_{channel_id}.json", TypeAdapter(list[VideoInfo]), fallback)

    async def get_channel_daily_metrics(self, channel_id: str, date_range: DateRange) -> list[MetricRow]:
        rows = []
        for day in _days(date_range):
            rng = _rng(channel_id, day)
            weekend = 1.3 if day.weekday() >= 5 else 1.0
            views = int((800 + rng.randint(0, 400)) * weekend)
            rows.extend([
                MetricRow(date=day, metric="views", value=views),
                MetricRow(date=day, metric="estimatedMinutesWatched", value=round(views * rng.uniform(2.0, 4.0), 1)),
                MetricRow(date=day, metric="averageViewDuration", value=rng.randint(120, 300)),
                MetricRow(date=day, metric="subscribersGained", value=rng.randint(5, 40)),
                MetricRow(date=day, metric="subscribersLost", value=rng.randint(0, 8)),
            ])
        return self._read_fixture(f"metrics_channel_{channel_id}.json", TypeAdapter(list[MetricRow]), rows)

    async def get_video_daily_metrics(
        self, video_ids: list[str], date_range: DateRange
    ) -> dict[str, list[MetricRow]]:
        result = {}
        for video_id in video_ids:
            rows = []
            for day in _days(date_range):
                rng = _rng(video_id, day)
                views = rng.randint(20, 600)
                impressions = views * rng.randint(10, 40)
                rows.extend([
                    MetricRow(date=day, metric="views", value=views),
                    MetricRow(date=day, metric="estimatedMinutesWatched", value=round(views * rng.uniform(1.0, 5.0), 1)),
                    MetricRow(date=day, metric="averageViewDuration", value=rng.randint(60, 400)),
                    MetricRow(date=day, metric="likes", value=views // rng.randint(15, 40)),
                    MetricRow(date=day, metric="comments", value=views // rng.randint(80, 200)),
                    MetricRow(date=day, metric="shares", value=views // rng.randint(100, 300)),
                    MetricRow(date=day, metric="videoThumbnailImpressions", value=impressions),
                    MetricRow(date=day, metric="videoThumbnailImpressionsClickRate",
                              value=round(views / impressions * 100, 2)),
                ])
            result[video_id] = rows
        return self._read_fixture("metrics_videos.json", TypeAdapter(dict[str, list[MetricRow]]), result)

    async def get_public_channel(self, channel_id: str) -> ChannelInfo:
        return ChannelInfo(
            id=channel_id,
            title=f"Competitor {channel_id}",
            subscriber_count=50000,
            created_at=datetime(2022, 1, 1, tzinfo=timezone.utc),
        )

    async def get_public_videos(self, channel_id: str, max_results: int = 20) -> list[VideoInfo]:
        """One upload per day, keyed by publish date; every fifth one goes viral.

        Views grow linearly with age, so consecutive syncs see real velocity.
        """
        today = self._today()
        videos = []
        for i in range(max_results):
            published = today - timedelta(days=i + 1)
            ordinal = published.toordinal()
            viral = ordinal % 5 == 0
            daily = 50000 if viral else 1000
            videos.append(VideoInfo(
                id=f"comp_{channel_id}_{published:%Y%m%d}",
                title=f"{TOPICS[ordinal % len(TOPICS)].title()} {'(VIRAL)' if viral else ''}".strip(),
                published_at=datetime.combine(published, datetime.min.time(), timezone.utc),
                duration_sec=300,
                views=daily * (i + 1),
            ))
        return videos
