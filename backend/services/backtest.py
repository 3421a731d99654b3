"""Rolling-origin backtesting of forecasters."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from services.forecasting import Forecaster, SeriesPoint
from services.stats import mae, mean, quantile, smape


@dataclass
class BacktestResult:
    """Mean accuracy over all evaluated windows.

    ``residuals`` are ``actual - predicted`` for every evaluated point.
    Zero metrics with no residuals means no window fit in the data.
    """
    model_name: str
    smape: float = 0.0
    mae: float = 0.0
    windows: int = 0
    residuals: list[float] = field(default_factory=list)


def run_backtest(
    data: Sequence[SeriesPoint],
    forecaster: Forecaster,
    window_size: int = 28,
    horizon: int = 7,
    step: int = 7,
    model_name: str | None = None,
) -> BacktestResult:
    """Forecast ``horizon`` days from every origin ``window_size, window_size + step, ...``.

    When ``model_name`` is not given it is probed by calling the forecaster
    on the first observation alone.
    """
    if model_name is None and data:
        model_name = forecaster(data[:1], 1).model_name

    smapes, maes, residuals = [], [], []
    for origin in range(window_size, len(data) - horizon + 1, step):
        actual = [p.value for p in data[origin:origin + horizon]]
        predicted = forecaster(data[:origin], horizon).values

        smapes.append(smape(actual, predicted))
        maes.append(mae(actual, predicted))
        residuals.extend(a - p for a, p in zip(actual, predicted))

    return BacktestResult(
        model_name=model_name or "",
        smape=mean(smapes) if smapes else 0.0,
        mae=mean(maes) if maes else 0.0,
        windows=len(smapes),
        residuals=residuals,
    )


def calculate_confidence_intervals(
    predictions: Sequence[SeriesPoint], residuals: Sequence[float]
) -> tuple[list[SeriesPoint], list[SeriesPoint]]:
    """Shift predictions by the residual interquartile bounds, clamped at zero."""
    q25 = quantile(residuals, 0.25)
    q75 = quantile(residuals, 0.75)
    lower = [SeriesPoint(p.date, max(0.0, p.value + q25)) for p in predictions]
    upper = [SeriesPoint(p.date, max(0.0, p.value + q75)) for p in predictions]
    return lower, upper
