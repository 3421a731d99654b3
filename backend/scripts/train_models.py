#!/usr/bin/env python3
"""Backtest the forecasters on stored channel history and update the active model."""

import asyncio
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import async_session, engine
from services.model_registry import MIN_HISTORY_DAYS, ModelRegistry
from services.repository import Repository


async def train_models(channel_id: str | None):
    """Train, print the leaderboard and commit the new active model."""
    async with async_session() as db:
        repo = Repository(db)
        if channel_id is None:
            channel = await repo.get_primary_channel()
            if channel is None:
                print("No channel synced yet. Run run_sync.py first.")
                return
            channel_id = channel.id

        outcome = await ModelRegistry(repo).train_and_evaluate(channel_id, date.today())
        if outcome is None:
            print(f"Not enough history for {channel_id} (need {MIN_HISTORY_DAYS} days).")
            return
        await db.commit()

        print(f"Backtest results for {channel_id}:")
        for result in sorted(outcome.results, key=lambda r: r.smape):
            marker = "*" if result.model_name == outcome.active else " "
            print(f" {marker} {result.model_name:<14} sMAPE {result.smape:6.2f}  MAE {result.mae:10.1f}  windows {result.windows}")
        if not outcome.promoted:
            print(f"  {outcome.best} did not beat the baseline; keeping {outcome.active}.")

    await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) > 2:
        print("Usage: python3 train_models.py [channel-id]")
        sys.exit(1)

    asyncio.run(train_models(sys.argv[1] if len(sys.argv) == 2 else None))
