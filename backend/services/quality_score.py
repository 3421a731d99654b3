"""Composite per-video quality score over a trailing 28-day window."""

from collections.abc import Sequence
from dataclasses import dataclass, field

QUALITY_WINDOW_DAYS = 28

BENCHMARKS = {
    "velocity": 100.0,  # views per day
    "efficiency": 3.0,  # watch minutes per view
    "conversion": 50.0,  # likes + comments per 1,000 views
}

WEIGHTS = {"velocity": 0.4, "efficiency": 0.4, "conversion": 0.2}


@dataclass
class DayStats:
    views: float
    watch_time_minutes: float = 0.0
    likes: float = 0.0
    comments: float = 0.0


@dataclass
class QualityResult:
    score: float
    velocity_score: float
    efficiency_score: float
    conversion_score: float
    explanation: dict = field(default_factory=dict)


def _normalize(value: float, benchmark: float) -> float:
    return min(100.0, value / benchmark * 100)


def _verdict(score: float) -> str:
    if score > 70:
        return "High Quality"
    if score > 40:
        return "Average"
    return "Needs Improvement"


def compute_quality_score(stats: Sequence[DayStats]) -> QualityResult | None:
    """Score the given daily rows. None when there are no rows."""
    if not stats:
        return None

    total_views = sum(s.views for s in stats)
    total_watch = sum(s.watch_time_minutes for s in stats)
    total_engagement = sum(s.likes + s.comments for s in stats)

    velocity = total_views / len(stats)
    efficiency = total_watch / total_views if total_views > 0 else 0.0
    conversion = total_engagement / total_views * 1000 if total_views > 0 else 0.0

    score_v = _normalize(velocity, BENCHMARKS["velocity"])
    score_e = _normalize(efficiency, BENCHMARKS["efficiency"])
    score_c = _normalize(conversion, BENCHMARKS["conversion"])
    score = (
        WEIGHTS["velocity"] * score_v
        + WEIGHTS["efficiency"] * score_e
        + WEIGHTS["conversion"] * score_c
    )

    explanation = {
        "velocity": f"{velocity:.1f} views/day (Score: {score_v:.0f}, Benchmark: {BENCHMARKS['velocity']:.0f})",
        "efficiency": f"{efficiency:.1f} min avg (Score: {score_e:.0f}, Benchmark: {BENCHMARKS['efficiency']:.1f})",
        "conversion": f"{conversion:.1f} eng/1k (Score: {score_c:.0f}, Benchmark: {BENCHMARKS['conversion']:.0f})",
        "days": len(stats),
        "verdict": _verdict(score),
    }
    return QualityResult(score, score_v, score_e, score_c, explanation)
