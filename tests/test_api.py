"""HTTP tests for the sync, competitor and analytics routers."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from config import get_settings
from database import get_db
from main import app
from services.channel_sync import SyncOrchestrator
from services.data_provider import ChannelInfo, VideoInfo
from services.fake_provider import FakeProvider
from services.insights import default_registry
from services.nowcast import CurvePoint
from services.progress_store import ProgressStore
from services.repository import Repository

TODAY = date(2026, 3, 2)


@pytest_asyncio.fixture
async def client(session_factory, settings):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    redis_client = AsyncMock()
    redis_client.get.return_value = None
    store = ProgressStore("redis://unused", client=redis_client)

    app.dependency_overrides[get_db] = override_get_db
    app.state.progress_store = store
    app.state.orchestrator = SyncOrchestrator(
        provider=FakeProvider(today=TODAY),
        session_factory=session_factory,
        plugins=default_registry(),
        settings=settings,
        on_progress=store.record,
        today=lambda: TODAY,
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return {"X-API-Key": get_settings().api_key}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_sync_requires_api_key(client):
    response = await client.post("/api/sync", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sync_rejected_while_running(client, auth):
    app.state.orchestrator.is_running = True
    response = await client.post("/api/sync", headers=auth)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "SYNC_FAILED"


@pytest.mark.asyncio
async def test_sync_then_read_analytics(client, auth):
    response = await client.post("/api/sync", headers=auth)
    assert response.status_code == 202

    status = (await client.get("/api/sync/status")).json()
    assert status["running"] is False
    assert status["last_run"]["status"] == "success"
    assert status["progress"]["stage"] == "complete"

    runs = (await client.get("/api/sync/runs")).json()
    assert len(runs) == 1

    quality = (await client.get("/api/analytics/quality", params={"limit": 5})).json()
    assert len(quality) == 5
    assert quality[0]["score"] >= quality[-1]["score"]

    forecast = (await client.get("/api/analytics/forecast", params={"horizon": 7})).json()
    assert forecast["model"] == "SeasonalNaive"
    assert len(forecast["points"]) == 7

    nowcast = await client.get("/api/analytics/videos/video_0/nowcast")
    assert nowcast.status_code == 200
    assert nowcast.json()["curve_bucket"] == "all"

    scan = await client.get("/api/analytics/anomalies", params={"days": 30})
    assert scan.status_code == 200
    assert scan.json()["channel_id"] == "fake_channel"

    insights = (await client.get("/api/analytics/insights")).json()
    assert all(i["run_id"] == runs[0]["id"] for i in insights)


@pytest.mark.asyncio
async def test_analytics_before_first_sync(client):
    assert (await client.get("/api/analytics/forecast")).status_code == 404
    assert (await client.get("/api/analytics/videos/nope/nowcast")).status_code == 404
    assert (await client.get("/api/analytics/insights")).json() == []
    assert (await client.get("/api/analytics/models")).json() == []


@pytest.mark.asyncio
async def test_competitors(client, auth):
    created = await client.post("/api/competitors", json={"channel_id": "UC123", "title": "Rival"}, headers=auth)
    assert created.status_code == 201
    assert created.json()["id"] == "UC123"

    listed = (await client.get("/api/competitors")).json()
    assert [c["id"] for c in listed] == ["UC123"]

    unauthorized = await client.post("/api/competitors", json={"channel_id": "UC999"}, headers={"X-API-Key": "x"})
    assert unauthorized.status_code == 401


@pytest.mark.asyncio
async def test_mark_missing_alert(client, auth):
    response = await client.post("/api/analytics/alerts/42/read", headers=auth)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_nowcast_counts_publish_day_as_day_one(client, session_factory, monkeypatch):
    monkeypatch.setattr("routers.analytics._today", lambda: TODAY)
    published = TODAY - timedelta(days=2)
    async with session_factory() as session:
        repo = Repository(session)
        await repo.upsert_channel(ChannelInfo(id="ch1", title="Channel"))
        await repo.upsert_videos("ch1", [VideoInfo(
            id="v1",
            title="Fresh upload",
            published_at=datetime.combine(published, datetime.min.time(), timezone.utc),
            duration_sec=300,
        )])
        await repo.upsert_video_days("v1", [
            {"day": published + timedelta(days=i), "views": 100} for i in range(3)
        ])
        await repo.replace_growth_curve(0, "all", [
            CurvePoint(day, day / 28, day / 28, day / 28, 10) for day in range(1, 29)
        ])
        await session.commit()

    response = await client.get("/api/analytics/videos/v1/nowcast")
    assert response.status_code == 200
    body = response.json()
    assert body["days_since_publish"] == 3
    assert body["current_views"] == 300
    assert body["curve_bucket"] == "all"
    assert body["predicted_7d"] == 700
    assert body["low"] == body["high"] == 700
