"""Forecast model registry: backtest every candidate and promote through a quality gate.

The best candidate by backtested sMAPE becomes active only when it does not
do worse than the SeasonalNaive baseline; otherwise the baseline stays
active. Exactly one model of the type is active after each training run.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from services.backtest import BacktestResult, calculate_confidence_intervals, run_backtest
from services.forecasting import FORECASTERS, ForecastResult, SeriesPoint
from services.repository import Repository

logger = logging.getLogger(__name__)

MODEL_TYPE = "forecast"
MODEL_VERSION = "1.0"
BASELINE_MODEL = "SeasonalNaive"
MIN_HISTORY_DAYS = 60
TRAINING_WINDOW_DAYS = 365


@dataclass
class TrainingOutcome:
    results: list[BacktestResult]
    best: str
    active: str
    promoted: bool


def model_id_for(name: str) -> str:
    return f"forecast_{name.lower()}"


def select_active(results: Sequence[BacktestResult], baseline: str = BASELINE_MODEL) -> tuple[str, str]:
    """Return (best candidate, model to activate).

    Ties on sMAPE go to the earlier candidate.
    """
    best = min(results, key=lambda r: r.smape)
    base = next((r for r in results if r.model_name == baseline), None)
    if base is None or best.smape <= base.smape:
        return best.model_name, best.model_name
    return best.model_name, baseline


class ModelRegistry:
    """Trains, gates and serves channel-level view forecasters."""

    def __init__(self, repo: Repository):
        self.repo = repo

    async def _history(self, channel_id: str, today: date) -> list[SeriesPoint]:
        stats = await self.repo.get_channel_stats(
            channel_id, today - timedelta(days=TRAINING_WINDOW_DAYS), today
        )
        return [SeriesPoint(s.day, float(s.views)) for s in stats]

    async def train_and_evaluate(self, channel_id: str, today: date) -> TrainingOutcome | None:
        history = await self._history(channel_id, today)
        if len(history) < MIN_HISTORY_DAYS:
            logger.info(
                f"Skipping model training for {channel_id}: "
                f"{len(history)} days of history, need {MIN_HISTORY_DAYS}"
            )
            return None

        results = [
            run_backtest(history, forecaster, model_name=name)
            for name, forecaster in FORECASTERS.items()
        ]
        best, active = select_active(results)

        await self.repo.deactivate_models(MODEL_TYPE)
        for result in results:
            await self.repo.upsert_model(model_id_for(result.model_name), {
                "model_type": MODEL_TYPE,
                "name": result.model_name,
                "version": MODEL_VERSION,
                "metrics": {
                    "smape": result.smape,
                    "mae": result.mae,
                    "windows": result.windows,
                    "residuals": result.residuals,
                },
                "is_active": result.model_name == active,
            })

        summary = ", ".join(f"{r.model_name}={r.smape:.2f}" for r in results)
        logger.info(f"Backtest sMAPE: {summary}. Active model: {active}")
        return TrainingOutcome(results=results, best=best, active=active, promoted=best == active)

    async def forecast(self, channel_id: str, horizon: int, today: date) -> dict | None:
        """Forecast with the active model, banded by its backtest residual quartiles."""
        history = await self._history(channel_id, today)
        if not history:
            return None

        record = await self.repo.get_active_model(MODEL_TYPE)
        name = record.name if record and record.name in FORECASTERS else BASELINE_MODEL
        residuals = record.metrics.get("residuals", []) if record else []

        result: ForecastResult = FORECASTERS[name](history, horizon)
        lower, upper = calculate_confidence_intervals(result.predictions, residuals)
        return {
            "model": name,
            "model_output": result.model_name,
            "points": [
                {"date": p.date, "value": p.value, "lower": lo.value, "upper": hi.value}
                for p, lo, hi in zip(result.predictions, lower, upper)
            ],
        }
