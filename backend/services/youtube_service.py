"""YouTube Data API v3 + Analytics API v2 provider.

Read-only: fetches channel profile, uploads and daily analytics reports.
Analytics reports are only available for the authorized channel; public
calls work for any channel id.
"""

import logging
import re
from datetime import date, datetime

from errors import AppError, ErrorCode
from services.data_provider import ChannelInfo, DateRange, MetricRow, VideoInfo
from services.http_client import ApiHttpClient

logger = logging.getLogger(__name__)

YT_API_BASE = "https://www.googleapis.com/youtube/v3"
YT_ANALYTICS_BASE = "https://youtubeanalytics.googleapis.com/v2"

MINE = "MINE"
CHANNEL_METRICS = "views,estimatedMinutesWatched,averageViewDuration,subscribersGained,subscribersLost"
VIDEO_METRICS = "views,estimatedMinutesWatched,averageViewDuration,likes,comments,shares"
PAGE_SIZE = 50


def _parse_duration(iso_duration: str) -> int:
    """Parse ISO 8601 duration (PT1H2M3S) to seconds."""
    if not iso_duration:
        return 0
    match = re.match(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?", iso_duration)
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def _parse_iso_datetime(val: str | None) -> datetime | None:
    if not val:
        return None
    try:
        return datetime.fromisoformat(val.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None


def _best_thumbnail(snippet: dict) -> str | None:
    thumbnails = snippet.get("thumbnails", {})
    return (
        thumbnails.get("maxres", {}).get("url")
        or thumbnails.get("high", {}).get("url")
        or thumbnails.get("medium", {}).get("url")
    )


def map_analytics_response(data: dict) -> list[MetricRow]:
    """Flatten an Analytics report (first column = day) into metric triples."""
    headers = [h["name"] for h in data.get("columnHeaders", [])]
    rows = []
    for row in data.get("rows") or []:
        day = date.fromisoformat(row[0])
        for name, value in zip(headers[1:], row[1:]):
            rows.append(MetricRow(date=day, metric=name, value=float(value or 0)))
    return rows


def _video_from_item(item: dict) -> VideoInfo:
    snippet = item.get("snippet", {})
    statistics = item.get("statistics", {})
    return VideoInfo(
        id=item["id"],
        title=snippet.get("title", ""),
        description=snippet.get("description"),
        published_at=_parse_iso_datetime(snippet.get("publishedAt")),
        duration_sec=_parse_duration(item.get("contentDetails", {}).get("duration", "")),
        views=int(statistics.get("viewCount", 0)),
        likes=int(statistics.get("likeCount", 0)),
        comments=int(statistics.get("commentCount", 0)),
        thumbnail_url=_best_thumbnail(snippet),
    )


class YouTubeProvider:
    """DataProvider backed by the YouTube APIs."""

    def __init__(self, http: ApiHttpClient):
        self.http = http

    async def get_channel(self, channel_id: str) -> ChannelInfo:
        params = {"part": "snippet,statistics,contentDetails"}
        if not channel_id or channel_id == MINE:
            params["mine"] = "true"
        else:
            params["id"] = channel_id

        data = await self.http.get_json(f"{YT_API_BASE}/channels", params)
        items = data.get("items", [])
        if not items:
            raise AppError(ErrorCode.NOT_FOUND, f"Channel not found: {channel_id}")

        item = items[0]
        snippet = item.get("snippet", {})
        statistics = item.get("statistics", {})
        channel = ChannelInfo(
            id=item["id"],
            title=snippet.get("title", ""),
            subscriber_count=int(statistics.get("subscriberCount", 0)),
            video_count=int(statistics.get("videoCount", 0)),
            view_count=int(statistics.get("viewCount", 0)),
            created_at=_parse_iso_datetime(snippet.get("publishedAt")),
            thumbnail_url=_best_thumbnail(snippet),
            uploads_playlist_id=item.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads"),
        )
        logger.info(f"YouTube channel fetched: {channel.title} ({channel.subscriber_count} subscribers)")
        return channel

    async def list_videos(self, channel_id: str, max_results: int = 50) -> list[VideoInfo]:
        """Most recent uploads, newest first, via the uploads playlist."""
        channel = await self.get_channel(channel_id)
        if not channel.uploads_playlist_id:
            return []

        videos: list[VideoInfo] = []
        page_token = None
        while len(videos) < max_results:
            params = {
                "part": "contentDetails",
                "playlistId": channel.uploads_playlist_id,
                "maxResults": min(PAGE_SIZE, max_results - len(videos)),
            }
            if page_token:
                params["pageToken"] = page_token
            playlist = await self.http.get_json(f"{YT_API_BASE}/playlistItems", params)

            video_ids = [
                item["contentDetails"]["videoId"]
                for item in playlist.get("items", [])
                if item.get("contentDetails", {}).get("videoId")
            ]
            if not video_ids:
                break

            details = await self.http.get_json(
                f"{YT_API_BASE}/videos",
                {"part": "snippet,statistics,contentDetails", "id": ",".join(video_ids)},
            )
            videos.extend(_video_from_item(item) for item in details.get("items", []))

            page_token = playlist.get("nextPageToken")
            if not page_token:
                break

        return videos[:max_results]

    async def _report(self, date_range: DateRange, metrics: str, filters: str | None = None) -> list[MetricRow]:
        params = {
            "ids": "channel==MINE",
            "startDate": date_range.start.isoformat(),
            "endDate": date_range.end.isoformat(),
            "metrics": metrics,
            "dimensions": "day",
            "sort": "day",
        }
        if filters:
            params["filters"] = filters
        data = await self.http.get_json(f"{YT_ANALYTICS_BASE}/reports", params)
        return map_analytics_response(data)

    async def get_channel_daily_metrics(self, channel_id: str, date_range: DateRange) -> list[MetricRow]:
        return await self._report(date_range, CHANNEL_METRICS)

    async def get_video_daily_metrics(
        self, video_ids: list[str], date_range: DateRange
    ) -> dict[str, list[MetricRow]]:
        result = {}
        for video_id in video_ids:
            result[video_id] = await self._report(date_range, VIDEO_METRICS, f"video=={video_id}")
        return result

    async def get_public_channel(self, channel_id: str) -> ChannelInfo:
        return await self.get_channel(channel_id)

    async def get_public_videos(self, channel_id: str, max_results: int = 20) -> list[VideoInfo]:
        return await self.list_videos(channel_id, max_results)

    async def aclose(self) -> None:
        await self.http.aclose()
