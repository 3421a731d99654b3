"""Shared fixtures: an in-memory SQLite database and pipeline settings."""

from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers tables)
from config import Settings
from database import Base
from services.forecasting import SeriesPoint
from services.repository import Repository

TODAY = date(2026, 3, 2)


def make_series(values, start: date = date(2026, 1, 5)) -> list[SeriesPoint]:
    return [SeriesPoint(start + timedelta(days=i), float(v)) for i, v in enumerate(values)]


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(session) -> Repository:
    return Repository(session)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        data_provider="fake",
        scheduler_enabled=False,
        youtube_channel_id="",
        sync_lookback_days=21,
        video_metrics_concurrency=3,
    )
