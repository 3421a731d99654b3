"""Redis-backed store for the latest sync progress.

Lets the API report progress of a run started by the scheduler or by
another worker. Redis failures are logged and never interrupt a sync.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis

from services.channel_sync import SyncProgress

logger = logging.getLogger(__name__)

# Redis keys
PROGRESS_KEY = "insight:sync:progress"

# Progress of a finished run stays visible for a day
PROGRESS_TTL = 60 * 60 * 24


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class ProgressStore:
    """Async Redis store for sync progress."""

    def __init__(self, redis_url: str, client: redis.Redis | None = None):
        self.redis_url = redis_url
        self._client = client

    def get_client(self) -> redis.Redis:
        """Get or create the Redis connection pool."""
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def record(self, progress: SyncProgress) -> None:
        """Save progress; used as the orchestrator's progress callback."""
        data = {**progress.to_dict(), "updated_at": datetime.now(timezone.utc)}
        try:
            await self.get_client().set(PROGRESS_KEY, json.dumps(data, cls=DateTimeEncoder), ex=PROGRESS_TTL)
        except redis.RedisError as e:
            logger.warning(f"Could not store sync progress: {e}")

    async def get(self) -> dict | None:
        try:
            data = await self.get_client().get(PROGRESS_KEY)
        except redis.RedisError as e:
            logger.warning(f"Could not read sync progress: {e}")
            return None
        return json.loads(data) if data else None

    async def health_check(self) -> bool:
        """Check if Redis is available."""
        try:
            await self.get_client().ping()
            return True
        except (redis.RedisError, OSError):
            return False
