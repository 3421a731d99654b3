"""Remote data provider contract and the records it exchanges."""

from datetime import date, datetime
from typing import Protocol

from pydantic import BaseModel

from config import Settings


class DateRange(BaseModel):
    """Inclusive calendar date range."""
    start: date
    end: date


class ChannelInfo(BaseModel):
    id: str
    title: str
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0
    created_at: datetime | None = None
    thumbnail_url: str | None = None
    uploads_playlist_id: str | None = None


class VideoInfo(BaseModel):
    id: str
    title: str
    description: str | None = None
    published_at: datetime | None = None
    duration_sec: int = 0
    views: int = 0
    likes: int = 0
    comments: int = 0
    thumbnail_url: str | None = None


class MetricRow(BaseModel):
    """One (day, metric, value) triple from an analytics report."""
    date: date
    metric: str
    value: float


class DataProvider(Protocol):
    """Source of channel, video and daily metric data.

    Every call may raise ``AppError`` (network, auth or quota).
    """

    async def get_channel(self, channel_id: str) -> ChannelInfo: ...

    async def list_videos(self, channel_id: str, max_results: int = 50) -> list[VideoInfo]: ...

    async def get_channel_daily_metrics(self, channel_id: str, date_range: DateRange) -> list[MetricRow]: ...

    async def get_video_daily_metrics(
        self, video_ids: list[str], date_range: DateRange
    ) -> dict[str, list[MetricRow]]: ...

    async def get_public_channel(self, channel_id: str) -> ChannelInfo: ...

    async def get_public_videos(self, channel_id: str, max_results: int = 20) -> list[VideoInfo]: ...


def build_provider(settings: Settings) -> DataProvider:
    """Create the provider selected by ``settings.data_provider``."""
    if settings.data_provider == "fake":
        from services.fake_provider import FakeProvider
        return FakeProvider(fixtures_dir=settings.fake_fixtures_dir or None)

    from services.http_client import ApiHttpClient
    from services.rate_limiter import TokenBucket
    from services.youtube_service import YouTubeProvider

    async def token_provider() -> str | None:
        return settings.youtube_oauth_token or None

    http = ApiHttpClient(
        limiter=TokenBucket(settings.rate_limit_capacity, settings.rate_limit_refill_per_sec),
        token_provider=token_provider,
        api_key=settings.youtube_api_key or None,
        max_retries=settings.http_max_retries,
        backoff_base=settings.http_backoff_base_sec,
        backoff_jitter=settings.http_backoff_jitter_sec,
        timeout=settings.http_timeout_sec,
    )
    return YouTubeProvider(http)
