"""Background scheduler for the periodic sync.

Uses APScheduler to run the sync pipeline every few hours.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from errors import AppError, ErrorCode
from services.channel_sync import SyncOrchestrator
from services.data_provider import DateRange

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "channel_sync"


async def run_sync_job(orchestrator: SyncOrchestrator, date_range: DateRange | None = None) -> None:
    """Run one sync in the background. Failures are logged, never raised."""
    logger.info("Starting background channel sync...")
    try:
        result = await orchestrator.run(date_range)
    except AppError as e:
        if e.code == ErrorCode.SYNC_FAILED and orchestrator.is_running:
            logger.info("Sync already in progress, skipping")
        else:
            logger.error(f"Background sync failed: {e.code.value} {e.message}")
        return

    logger.info(
        f"Background sync complete: run {result.run_id}, "
        f"{result.videos} videos, {result.insights} insights"
    )


def create_scheduler(orchestrator: SyncOrchestrator, interval_hours: int) -> AsyncIOScheduler:
    """Build a scheduler with the sync job registered (not started)."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_sync_job,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[orchestrator],
        id=SYNC_JOB_ID,
        name="Sync channel analytics",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
