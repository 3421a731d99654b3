"""Tests for rolling-origin backtesting and confidence bands."""

import pytest

from conftest import make_series
from services.backtest import calculate_confidence_intervals, run_backtest
from services.forecasting import ForecastResult, SeriesPoint, forecast_holt_winters, forecast_naive


def constant(value: float):
    def forecaster(history, horizon):
        last = history[-1].date
        return ForecastResult([SeriesPoint(last, value) for _ in range(horizon)], "Constant")
    return forecaster


class TestRunBacktest:
    def test_window_count(self):
        # origins 28, 35, 42, 49 (56 would need days up to 62)
        result = run_backtest(make_series([100] * 60), forecast_naive)
        assert result.windows == 4
        assert result.model_name == "Naive"

    def test_perfect_forecast_scores_zero(self):
        result = run_backtest(make_series([100] * 60), forecast_naive)
        assert result.smape == 0.0
        assert result.mae == 0.0
        assert result.residuals == [0.0] * 28

    def test_residuals_are_actual_minus_predicted(self):
        result = run_backtest(make_series([100] * 35), constant(90))
        assert result.windows == 1
        assert result.residuals == [10.0] * 7
        assert result.mae == pytest.approx(10.0)

    def test_too_short_history_has_no_windows(self):
        result = run_backtest(make_series([100] * 30), forecast_naive)
        assert result.windows == 0
        assert result.smape == 0.0
        assert result.residuals == []

    def test_explicit_name_skips_probe(self):
        # a single point would make HoltWinters report its fallback's name
        result = run_backtest(make_series([100] * 35), forecast_holt_winters, model_name="HoltWinters")
        assert result.model_name == "HoltWinters"


class TestConfidenceIntervals:
    def test_shift_by_residual_quartiles(self):
        predictions = make_series([100, 200])
        lower, upper = calculate_confidence_intervals(predictions, [-20, -10, 10, 20])
        assert [p.value for p in lower] == [87.5, 187.5]
        assert [p.value for p in upper] == [112.5, 212.5]

    def test_lower_bound_clamped_at_zero(self):
        lower, _ = calculate_confidence_intervals(make_series([5]), [-50, -40, -30])
        assert lower[0].value == 0.0

    def test_no_residuals_gives_zero_width(self):
        lower, upper = calculate_confidence_intervals(make_series([42]), [])
        assert lower[0].value == upper[0].value == 42
