"""Spike/drop detection and structural trend-break detection on daily series."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np

from services.forecasting import SeriesPoint
from services.stats import mean, sample_std

ANOMALY_WINDOW = 14
CRITICAL_Z = 3.5
MIN_STD = 1e-10
MIN_TREND_POINTS = 10


@dataclass
class Anomaly:
    date: date
    value: float
    z_score: float
    type: str  # "spike" or "drop"
    severity: str  # "warning" or "critical"


@dataclass
class TrendBreak:
    break_date: date
    mean_before: float
    mean_after: float
    change_percent: float


def detect_anomalies(
    data: Sequence[SeriesPoint],
    sensitivity: float = 2.5,
    window: int = ANOMALY_WINDOW,
) -> list[Anomaly]:
    """Flag points whose z-score against the preceding window exceeds ``sensitivity``."""
    anomalies = []
    for i in range(window, len(data)):
        previous = [p.value for p in data[i - window:i]]
        std = sample_std(previous)
        if std < MIN_STD:
            continue

        z = (data[i].value - mean(previous)) / std
        if abs(z) > sensitivity:
            anomalies.append(Anomaly(
                date=data[i].date,
                value=data[i].value,
                z_score=z,
                type="spike" if z > 0 else "drop",
                severity="critical" if abs(z) > CRITICAL_Z else "warning",
            ))
    return anomalies


def detect_trend_break(data: Sequence[SeriesPoint]) -> TrendBreak | None:
    """Locate the most likely level shift via CUSUM.

    The break is reported only when the before/after means differ by at
    least one standard deviation of the whole series.
    """
    if len(data) < MIN_TREND_POINTS:
        return None

    values = np.array([p.value for p in data], dtype=float)
    n = len(values)
    cusum = np.cumsum(values - values.mean())

    # Candidates exclude both ends so each side keeps at least one point
    interior = np.abs(cusum[1:n - 1])
    if interior.max() <= 0:
        return None
    idx = int(np.argmax(interior)) + 1

    before, after = values[:idx + 1], values[idx + 1:]
    mean_before, mean_after = float(before.mean()), float(after.mean())

    global_std = sample_std(values)
    if global_std > 0 and abs(mean_after - mean_before) < global_std:
        return None

    change = (mean_after - mean_before) / abs(mean_before) * 100 if mean_before != 0 else 0.0
    return TrendBreak(
        break_date=data[idx + 1].date,
        mean_before=mean_before,
        mean_after=mean_after,
        change_percent=change,
    )
