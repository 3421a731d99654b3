"""Competitor momentum: view velocity and self-relative hit detection."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from services.stats import mean, quantile

HIT_PERCENTILE = 0.95
HIT_FLOOR = 1000
EMA_ALPHA = 0.3
SUSTAINED_RATIO = 1.5
ACCELERATION_RATIO = 0.1
SUSTAINED_MIN_DAYS = 3


@dataclass
class Snapshot:
    day: date
    view_count: int


@dataclass
class MomentumResult:
    day: date
    velocity_24h: float
    velocity_7d: float
    momentum_score: float
    is_hit: bool
    acceleration: float = 0.0
    acceleration_trend: str = "stable"
    sustained_days: int = 0
    is_sustained: bool = False


def _ema(values: Sequence[float], alpha: float = EMA_ALPHA) -> list[float]:
    smoothed = [values[0]]
    for v in values[1:]:
        smoothed.append(alpha * v + (1 - alpha) * smoothed[-1])
    return smoothed


def compute_momentum(snapshots: Sequence[Snapshot], current_day: date) -> MomentumResult | None:
    """Compute velocities for ``current_day`` from one video's snapshot history.

    Returns None when the day has no snapshot or no earlier snapshot exists.
    A hit needs the 24h velocity to beat both the 95th percentile of the
    video's earlier daily velocities and an absolute floor.
    """
    ordered = sorted(snapshots, key=lambda s: s.day)
    index = next((i for i, s in enumerate(ordered) if s.day == current_day), None)
    if index is None or index == 0:
        return None

    history = ordered[:index + 1]
    current = history[-1].view_count

    velocities = [
        max(0, history[i].view_count - history[i - 1].view_count)
        for i in range(1, len(history))
    ]
    velocity_24h = velocities[-1]
    base = history[index - 7] if index >= 7 else history[0]
    velocity_7d = max(0, current - base.view_count)

    threshold = quantile(velocities[:-1], HIT_PERCENTILE)
    avg_velocity = mean(velocities)
    momentum_score = velocity_24h / avg_velocity if avg_velocity > 0 else 0.0
    is_hit = velocity_24h > threshold and velocity_24h > HIT_FLOOR

    acceleration = 0.0
    trend = "stable"
    sustained = 0
    if len(velocities) >= 3:
        recent = _ema(velocities)[-3:]
        acceleration = round((recent[2] - recent[1]) - (recent[1] - recent[0]), 2)
        change = recent[2] - recent[0]
        if change > avg_velocity * ACCELERATION_RATIO:
            trend = "accelerating"
        elif change < -avg_velocity * ACCELERATION_RATIO:
            trend = "decelerating"

        for v in reversed(velocities):
            if avg_velocity > 0 and v / avg_velocity > SUSTAINED_RATIO:
                sustained += 1
            else:
                break

    return MomentumResult(
        day=current_day,
        velocity_24h=float(velocity_24h),
        velocity_7d=float(velocity_7d),
        momentum_score=momentum_score,
        is_hit=is_hit,
        acceleration=acceleration,
        acceleration_trend=trend,
        sustained_days=sustained,
        is_sustained=sustained >= SUSTAINED_MIN_DAYS,
    )
