#!/usr/bin/env python3
"""Run one channel sync from the command line."""

import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from database import Base, async_session, engine
from errors import AppError
from services.channel_sync import SyncOrchestrator, SyncProgress
from services.cluster_naming import ClusterNamer
from services.data_provider import DateRange, build_provider
from services.insights import default_registry


def print_progress(progress: SyncProgress) -> None:
    print(f"[{progress.progress:3d}%] {progress.stage}: {progress.message}")


async def run_sync(start: date | None, end: date | None) -> int:
    """Sync once and print a summary. Returns the process exit code."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    provider = build_provider(settings)
    namer = ClusterNamer(settings.chatbot_api_url) if settings.cluster_naming_enabled else None
    orchestrator = SyncOrchestrator(
        provider=provider,
        session_factory=async_session,
        plugins=default_registry(namer),
        settings=settings,
        on_progress=print_progress,
    )

    date_range = DateRange(start=start, end=end or date.today()) if start else None
    try:
        result = await orchestrator.run(date_range)
    except AppError as e:
        print(f"Sync failed: {e.code.value} {e.message}")
        return 1
    finally:
        if hasattr(provider, "aclose"):
            await provider.aclose()
        await engine.dispose()

    print(f"Sync complete!")
    print(f"  Run: {result.run_id}")
    print(f"  Channel: {result.channel_id}")
    print(f"  Videos: {result.videos}")
    print(f"  Insights: {result.insights}")
    print(f"  Active model: {result.active_model or 'not enough history'}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) > 3:
        print("Usage: python3 run_sync.py [start-date] [end-date]")
        print("Example: python3 run_sync.py 2026-01-01 2026-01-31")
        sys.exit(1)

    start = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else None
    end = date.fromisoformat(sys.argv[2]) if len(sys.argv) > 2 else None

    sys.exit(asyncio.run(run_sync(start, end)))
