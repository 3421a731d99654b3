"""Empirical growth curves and early-life view projection.

A curve gives, for each day 1..28 after publish, the share of the day-28
cumulative total a video has typically reached.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from services.stats import median, quantile

CURVE_DAYS = 28
TARGET_DAY = 7

SHORT_MAX_SEC = 60
MEDIUM_MAX_SEC = 20 * 60


@dataclass
class VideoViews:
    """Per-day views of one video, starting on its publish day."""
    id: str
    duration_sec: int
    daily_views: list[float]


@dataclass
class CurvePoint:
    day: int
    median_pct: float
    p25_pct: float
    p75_pct: float
    sample_size: int = 0


@dataclass
class NowcastPrediction:
    predicted_7d: int
    low: int
    high: int


def duration_bucket(duration_sec: int) -> str:
    if duration_sec <= SHORT_MAX_SEC:
        return "short"
    if duration_sec <= MEDIUM_MAX_SEC:
        return "medium"
    return "long"


def fit_growth_curve(videos: Sequence[VideoViews]) -> list[CurvePoint]:
    """Fit the median/p25/p75 normalized cumulative curve over a population.

    Videos with fewer than 28 days or no views by day 28 are ignored.
    Returns an empty list when no video qualifies.
    """
    curves = []
    for video in videos:
        if len(video.daily_views) < CURVE_DAYS:
            continue
        cumulative = np.cumsum(np.asarray(video.daily_views[:CURVE_DAYS], dtype=float))
        total = cumulative[-1]
        if total == 0:
            continue
        curves.append(cumulative / total)

    if not curves:
        return []

    matrix = np.vstack(curves)
    points = []
    for day in range(CURVE_DAYS):
        column = matrix[:, day]
        points.append(CurvePoint(
            day=day + 1,
            median_pct=median(column),
            p25_pct=quantile(column, 0.25),
            p75_pct=quantile(column, 0.75),
            sample_size=len(curves),
        ))
    return points


def fit_growth_curves_by_bucket(videos: Sequence[VideoViews]) -> dict[str, list[CurvePoint]]:
    """Fit one curve for the whole population ("all") and one per duration bucket."""
    curves = {"all": fit_growth_curve(videos)}
    buckets: dict[str, list[VideoViews]] = {}
    for video in videos:
        buckets.setdefault(duration_bucket(video.duration_sec), []).append(video)
    for bucket, members in buckets.items():
        curves[bucket] = fit_growth_curve(members)
    return {bucket: points for bucket, points in curves.items() if points}


def predict_from_curve(
    current_views: float, days_since_publish: int, curve: Sequence[CurvePoint]
) -> NowcastPrediction:
    """Project cumulative views at day 7 from the views reached so far.

    Without a usable curve point, or from day 7 on, the current value is
    returned with a zero-width range.
    """
    current = round(current_views)
    unchanged = NowcastPrediction(current, current, current)

    by_day = {p.day: p for p in curve}
    point = by_day.get(days_since_publish)
    target = by_day.get(TARGET_DAY)
    if point is None or target is None or point.median_pct == 0:
        return unchanged
    if days_since_publish >= TARGET_DAY:
        return unchanged

    predicted = current_views / point.median_pct * target.median_pct
    low = current_views / point.p75_pct * target.p25_pct if point.p75_pct > 0 else predicted
    high = current_views / point.p25_pct * target.p75_pct if point.p25_pct > 0 else predicted
    return NowcastPrediction(round(predicted), round(low), round(high))
