"""Daily view forecasters.

Every forecaster has the signature ``(history, horizon) -> ForecastResult``.
``history`` is non-empty and chronological; the result holds exactly
``horizon`` points dated on the days following the last observation.
A single-point history is always accepted.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import product

import numpy as np

from services.stats import mean, sample_std, smape

logger = logging.getLogger(__name__)

SEASON_LENGTH = 7
TREND_WINDOW = 28
MOMENTUM_DAMPING = 0.9
HOLDOUT_DAYS = 14
SMOOTHING_GRID = (0.1, 0.3, 0.5, 0.7, 0.9)
BAND_Z = 1.96


@dataclass
class SeriesPoint:
    """One observation of a daily series."""
    date: date
    value: float


@dataclass
class ForecastResult:
    """Predicted points plus the name of the model that produced them."""
    predictions: list[SeriesPoint]
    model_name: str
    lower: list[float] | None = None
    upper: list[float] | None = None
    weights: dict[str, float] = field(default_factory=dict)

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.predictions]


Forecaster = Callable[[Sequence[SeriesPoint], int], ForecastResult]


def _future_dates(history: Sequence[SeriesPoint], horizon: int) -> list[date]:
    last = history[-1].date
    return [last + timedelta(days=i + 1) for i in range(horizon)]


def _points(dates: list[date], values: Sequence[float]) -> list[SeriesPoint]:
    return [SeriesPoint(d, max(0.0, float(v))) for d, v in zip(dates, values)]


def forecast_naive(history: Sequence[SeriesPoint], horizon: int) -> ForecastResult:
    """Repeat the last observed value."""
    last = history[-1].value
    dates = _future_dates(history, horizon)
    return ForecastResult(_points(dates, [last] * horizon), "Naive")


def forecast_seasonal_naive(history: Sequence[SeriesPoint], horizon: int) -> ForecastResult:
    """Repeat the value observed one week earlier, cycling through the last week."""
    n = len(history)
    dates = _future_dates(history, horizon)
    if n < SEASON_LENGTH:
        values = [history[-1].value] * horizon
    else:
        values = [history[n - SEASON_LENGTH + (i % SEASON_LENGTH)].value for i in range(horizon)]
    return ForecastResult(_points(dates, values), "SeasonalNaive")


def forecast_v2(history: Sequence[SeriesPoint], horizon: int) -> ForecastResult:
    """Linear trend x day-of-week factor x damped short-term momentum."""
    if len(history) < TREND_WINDOW:
        return forecast_naive(history, horizon)

    values = np.array([p.value for p in history], dtype=float)
    recent = values[-TREND_WINDOW:]
    x = np.arange(TREND_WINDOW, dtype=float)
    slope, intercept = np.polyfit(x, recent, 1)

    global_avg = mean(values) or 1.0
    seasonality = []
    for dow in range(7):
        day_values = [p.value for p in history if p.date.weekday() == dow]
        seasonality.append(mean(day_values) / global_avg if day_values else 1.0)

    avg_28 = mean(recent)
    momentum = mean(values[-3:]) / avg_28 if avg_28 > 0 else 1.0

    dates = _future_dates(history, horizon)
    predicted = []
    for i, d in enumerate(dates):
        trend = intercept + slope * (TREND_WINDOW + i)
        damped = 1 + (momentum - 1) * MOMENTUM_DAMPING ** i
        predicted.append(trend * seasonality[d.weekday()] * damped)

    return ForecastResult(_points(dates, predicted), "ForecastV2")


def _holt_winters_fit(
    values: np.ndarray, alpha: float, beta: float, gamma: float, m: int
) -> tuple[float, float, np.ndarray, list[float]]:
    """Run additive Holt-Winters over the series, returning final state and one-step residuals."""
    level = values[:m].mean()
    trend = (values[m:2 * m].mean() - level) / m
    seasonals = values[:m] - level
    residuals = []

    for t in range(m, len(values)):
        idx = t % m
        y = values[t]
        residuals.append(y - (level + trend + seasonals[idx]))
        new_level = alpha * (y - seasonals[idx]) + (1 - alpha) * (level + trend)
        trend = beta * (new_level - level) + (1 - beta) * trend
        seasonals[idx] = gamma * (y - new_level) + (1 - gamma) * seasonals[idx]
        level = new_level

    return level, trend, seasonals, residuals


def forecast_holt_winters(history: Sequence[SeriesPoint], horizon: int) -> ForecastResult:
    """Additive triple exponential smoothing with a weekly season.

    Smoothing constants are grid-searched to minimize one-step-ahead MAE.
    Bands are +/- 1.96 residual standard deviations.
    """
    m = SEASON_LENGTH
    if len(history) < 3 * m:
        return forecast_v2(history, horizon)

    values = np.array([p.value for p in history], dtype=float)
    n = len(values)

    best = None
    for alpha, beta, gamma in product(SMOOTHING_GRID, repeat=3):
        level, trend, seasonals, residuals = _holt_winters_fit(values, alpha, beta, gamma, m)
        score = float(np.mean(np.abs(residuals)))
        if best is None or score < best[0]:
            best = (score, level, trend, seasonals, residuals, (alpha, beta, gamma))

    _, level, trend, seasonals, residuals, params = best
    logger.debug(f"Holt-Winters params alpha/beta/gamma={params}")

    dates = _future_dates(history, horizon)
    predicted = [level + (h + 1) * trend + seasonals[(n + h) % m] for h in range(horizon)]
    spread = BAND_Z * sample_std(residuals)

    points = _points(dates, predicted)
    return ForecastResult(
        points,
        "HoltWinters",
        lower=[max(0.0, p.value - spread) for p in points],
        upper=[p.value + spread for p in points],
    )


ENSEMBLE_MEMBERS: dict[str, Forecaster] = {
    "ForecastV2": forecast_v2,
    "HoltWinters": forecast_holt_winters,
}


def _holdout_weights(history: Sequence[SeriesPoint]) -> dict[str, float]:
    """Inverse-sMAPE weights from a holdout of the last two weeks. Equal weights on failure."""
    equal = {name: 1.0 for name in ENSEMBLE_MEMBERS}
    if len(history) < HOLDOUT_DAYS + 3 * SEASON_LENGTH:
        return equal

    train = history[:-HOLDOUT_DAYS]
    actual = [p.value for p in history[-HOLDOUT_DAYS:]]
    weights = {}
    for name, forecaster in ENSEMBLE_MEMBERS.items():
        try:
            result = forecaster(train, HOLDOUT_DAYS)
        except Exception as e:
            logger.warning(f"Ensemble holdout for {name} failed, using equal weights: {e}")
            return equal
        weights[name] = 1.0 / max(smape(actual, result.values), 1e-6)
    return weights


def forecast_ensemble(history: Sequence[SeriesPoint], horizon: int) -> ForecastResult:
    """Blend ForecastV2 and HoltWinters, weighted by inverse holdout sMAPE."""
    weights = _holdout_weights(history)

    results = {}
    for name, forecaster in ENSEMBLE_MEMBERS.items():
        try:
            results[name] = forecaster(history, horizon)
        except Exception as e:
            logger.warning(f"Ensemble member {name} failed: {e}")

    if not results:
        return forecast_naive(history, horizon)

    total = sum(weights[name] for name in results)
    normalized = {name: weights[name] / total for name in results}
    blended = np.zeros(horizon)
    for name, result in results.items():
        blended += normalized[name] * np.array(result.values)

    dates = _future_dates(history, horizon)
    return ForecastResult(_points(dates, blended), "Ensemble", weights=normalized)


FORECASTERS: dict[str, Forecaster] = {
    "Naive": forecast_naive,
    "SeasonalNaive": forecast_seasonal_naive,
    "ForecastV2": forecast_v2,
    "HoltWinters": forecast_holt_winters,
    "Ensemble": forecast_ensemble,
}
