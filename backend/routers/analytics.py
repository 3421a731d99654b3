"""Analytics router - insights, alerts, rankings, forecasts and nowcasts."""

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from middleware.auth import verify_api_key
from routers.dependencies import get_repository
from services.anomaly import detect_anomalies, detect_trend_break
from services.forecasting import SeriesPoint
from services.model_registry import MODEL_TYPE, ModelRegistry
from services.nowcast import CurvePoint, duration_bucket, predict_from_curve
from services.repository import Repository

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _today() -> date:
    return datetime.now(timezone.utc).date()


async def _channel_id(repo: Repository, channel_id: str | None) -> str:
    if channel_id:
        return channel_id
    channel = await repo.get_primary_channel()
    if channel is None:
        raise HTTPException(status_code=404, detail="No channel synced yet")
    return channel.id


# ============== Response Models ==============

class InsightResponse(BaseModel):
    id: int
    run_id: int
    insight_type: str
    title: str
    description: str
    evidence: Any
    entity_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AlertResponse(BaseModel):
    id: int
    run_id: int
    insight_id: int | None = None
    alert_type: str
    severity: str
    message: str
    entity_id: str | None = None
    action: dict
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class QualityResponse(BaseModel):
    video_id: str
    title: str
    score: float
    velocity_score: float
    efficiency_score: float
    conversion_score: float
    explanation: dict


class CompetitorHitResponse(BaseModel):
    video_id: str
    channel_id: str
    title: str
    day: date
    velocity_24h: float
    velocity_7d: float
    momentum_score: float
    acceleration: float
    acceleration_trend: str
    sustained_days: int
    is_sustained: bool


class ForecastPointResponse(BaseModel):
    date: date
    value: float
    lower: float
    upper: float


class ForecastResponse(BaseModel):
    channel_id: str
    model: str
    model_output: str
    points: list[ForecastPointResponse]


class ModelResponse(BaseModel):
    model_id: str
    name: str
    version: str
    trained_at: datetime
    is_active: bool
    smape: float | None = None
    mae: float | None = None
    windows: int | None = None


class NowcastResponse(BaseModel):
    video_id: str
    days_since_publish: int
    current_views: int
    curve_bucket: str
    predicted_7d: int
    low: int
    high: int


class AnomalyResponse(BaseModel):
    date: date
    value: float
    z_score: float
    type: str
    severity: str


class TrendBreakResponse(BaseModel):
    break_date: date
    mean_before: float
    mean_after: float
    change_percent: float


class AnomalyScanResponse(BaseModel):
    channel_id: str
    anomalies: list[AnomalyResponse]
    trend_break: TrendBreakResponse | None = None


# ============== Endpoints ==============

@router.get("/insights", response_model=list[InsightResponse])
async def list_insights(
    repo: Annotated[Repository, Depends(get_repository)],
    run_id: int | None = None,
    insight_type: Annotated[str | None, Query(alias="type")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
):
    """Insights, newest first. Defaults to every run."""
    return await repo.get_insights(run_id, insight_type, limit)


@router.get("/alerts", response_model=list[AlertResponse])
async def list_alerts(
    repo: Annotated[Repository, Depends(get_repository)],
    unread_only: bool = False,
):
    return await repo.get_alerts(unread_only)


@router.post("/alerts/{alert_id}/read", dependencies=[Depends(verify_api_key)])
async def mark_alert_read(alert_id: int, repo: Annotated[Repository, Depends(get_repository)]):
    if not await repo.mark_alert_read(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    await repo.session.commit()
    return {"id": alert_id, "is_read": True}


@router.get("/quality", response_model=list[QualityResponse])
async def quality_ranking(
    repo: Annotated[Repository, Depends(get_repository)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """Owned videos ranked by their latest quality score."""
    return [
        QualityResponse(
            video_id=score.video_id,
            title=video.title,
            score=score.score,
            velocity_score=score.velocity_score,
            efficiency_score=score.efficiency_score,
            conversion_score=score.conversion_score,
            explanation=score.explanation,
        )
        for score, video in await repo.get_quality_ranking(limit)
    ]


@router.get("/competitors/hits", response_model=list[CompetitorHitResponse])
async def competitor_hits(
    repo: Annotated[Repository, Depends(get_repository)],
    days: Annotated[int, Query(ge=1, le=90)] = 3,
):
    """Competitor videos flagged as hits in the last ``days`` days."""
    since = _today() - timedelta(days=days)
    return [
        CompetitorHitResponse(
            video_id=video.id,
            channel_id=video.channel_id,
            title=video.title,
            day=record.day,
            velocity_24h=record.velocity_24h,
            velocity_7d=record.velocity_7d,
            momentum_score=record.momentum_score,
            acceleration=record.acceleration,
            acceleration_trend=record.acceleration_trend,
            sustained_days=record.sustained_days,
            is_sustained=record.is_sustained,
        )
        for record, video in await repo.get_competitor_hits(since)
    ]


@router.get("/forecast", response_model=ForecastResponse)
async def forecast_views(
    repo: Annotated[Repository, Depends(get_repository)],
    channel_id: str | None = None,
    horizon: Annotated[int, Query(ge=1, le=90)] = 14,
):
    """Daily channel views forecast from the active model, with confidence bands."""
    channel_id = await _channel_id(repo, channel_id)
    result = await ModelRegistry(repo).forecast(channel_id, horizon, _today())
    if result is None:
        raise HTTPException(status_code=404, detail="No channel history to forecast from")
    return ForecastResponse(channel_id=channel_id, **result)


@router.get("/models", response_model=list[ModelResponse])
async def list_models(repo: Annotated[Repository, Depends(get_repository)]):
    return [
        ModelResponse(
            model_id=record.model_id,
            name=record.name,
            version=record.version,
            trained_at=record.trained_at,
            is_active=record.is_active,
            smape=record.metrics.get("smape"),
            mae=record.metrics.get("mae"),
            windows=record.metrics.get("windows"),
        )
        for record in await repo.list_models(MODEL_TYPE)
    ]


@router.get("/videos/{video_id}/nowcast", response_model=NowcastResponse)
async def nowcast_video(video_id: str, repo: Annotated[Repository, Depends(get_repository)]):
    """Project a young video's day-7 views from the fitted growth curve."""
    video = await repo.get_video(video_id)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")
    if video.published_at is None:
        raise HTTPException(status_code=422, detail="Video has no publish date")

    # The publish day is day 1 of the growth curve.
    published = video.published_at.date()
    today = _today()
    stats = await repo.get_video_stats(video_id, published, today)
    current = sum(s.views for s in stats)
    days_since_publish = (today - published).days + 1

    bucket = duration_bucket(video.duration_sec)
    curve = await repo.get_growth_curve(bucket=bucket)
    if not curve:
        bucket = "all"
        curve = await repo.get_growth_curve(bucket=bucket)

    prediction = predict_from_curve(
        current,
        days_since_publish,
        [CurvePoint(p.day, p.median_pct, p.p25_pct, p.p75_pct, p.sample_size) for p in curve],
    )
    return NowcastResponse(
        video_id=video_id,
        days_since_publish=days_since_publish,
        current_views=current,
        curve_bucket=bucket,
        predicted_7d=prediction.predicted_7d,
        low=prediction.low,
        high=prediction.high,
    )


@router.get("/anomalies", response_model=AnomalyScanResponse)
async def scan_anomalies(
    repo: Annotated[Repository, Depends(get_repository)],
    channel_id: str | None = None,
    days: Annotated[int, Query(ge=15, le=365)] = 90,
    sensitivity: Annotated[float, Query(gt=0)] = 2.5,
):
    """Anomalous days and the strongest trend break in recent channel views."""
    channel_id = await _channel_id(repo, channel_id)
    today = _today()
    stats = await repo.get_channel_stats(channel_id, today - timedelta(days=days), today)
    series = [SeriesPoint(s.day, float(s.views)) for s in stats]

    found = detect_trend_break(series)
    return AnomalyScanResponse(
        channel_id=channel_id,
        anomalies=[
            AnomalyResponse(date=a.date, value=a.value, z_score=a.z_score, type=a.type, severity=a.severity)
            for a in detect_anomalies(series, sensitivity)
        ],
        trend_break=TrendBreakResponse(**vars(found)) if found else None,
    )
