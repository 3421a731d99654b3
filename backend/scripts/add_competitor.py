#!/usr/bin/env python3
"""Add a competitor channel to track."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import Base, async_session, engine
from services.repository import Repository


async def add_competitor(channel_id: str, title: str):
    """Add a competitor channel (no-op when already tracked)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        repo = Repository(db)
        competitor = await repo.add_competitor(channel_id, title)
        await db.commit()

        print(f"Competitor tracked.")
        print(f"  ID: {competitor.id}")
        print(f"  Title: {competitor.title or '(fetched on next sync)'}")
        print(f"  Tracked channels: {len(await repo.list_competitors())}")

    await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python3 add_competitor.py <channel-id> [title]")
        print("Example: python3 add_competitor.py UC_x5XG1OV2P6uZZ5FSM9Ttw \"Google Developers\"")
        sys.exit(1)

    channel_id = sys.argv[1]
    title = sys.argv[2] if len(sys.argv) == 3 else ""

    asyncio.run(add_competitor(channel_id, title))
