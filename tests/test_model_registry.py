"""Tests for model training, the baseline gate and serving forecasts."""

from datetime import date, timedelta

import pytest

from services.backtest import BacktestResult
from services.data_provider import ChannelInfo
from services.model_registry import ModelRegistry, model_id_for, select_active

TODAY = date(2026, 3, 2)


async def seed_history(repo, days: int):
    await repo.upsert_channel(ChannelInfo(id="ch1", title="Channel"))
    pattern = [1.0, 0.9, 0.95, 1.0, 1.1, 1.4, 1.3]
    rows = []
    for i in range(days):
        day = TODAY - timedelta(days=days - 1 - i)
        rows.append({"day": day, "views": int(1000 * pattern[day.weekday()] + 2 * i)})
    await repo.upsert_channel_days("ch1", rows)


class TestSelectActive:
    def test_best_beats_baseline(self):
        results = [BacktestResult("SeasonalNaive", smape=12.0), BacktestResult("Ensemble", smape=8.0)]
        assert select_active(results) == ("Ensemble", "Ensemble")

    def test_baseline_kept_when_best_is_worse(self):
        results = [BacktestResult("SeasonalNaive", smape=12.0), BacktestResult("Ensemble", smape=12.5)]
        # the baseline itself is the best here
        assert select_active(results) == ("SeasonalNaive", "SeasonalNaive")

    def test_tie_goes_to_earlier_candidate(self):
        results = [BacktestResult("Naive", smape=5.0), BacktestResult("SeasonalNaive", smape=5.0)]
        assert select_active(results) == ("Naive", "Naive")


def test_model_id():
    assert model_id_for("HoltWinters") == "forecast_holtwinters"


@pytest.mark.asyncio
async def test_training_needs_sixty_days(repo):
    await seed_history(repo, 59)
    assert await ModelRegistry(repo).train_and_evaluate("ch1", TODAY) is None
    assert await repo.list_models() == []


@pytest.mark.asyncio
async def test_training_registers_all_models_with_one_active(repo):
    await seed_history(repo, 90)
    outcome = await ModelRegistry(repo).train_and_evaluate("ch1", TODAY)

    assert [r.model_name for r in outcome.results] == [
        "Naive", "SeasonalNaive", "ForecastV2", "HoltWinters", "Ensemble",
    ]
    assert all(r.windows > 0 for r in outcome.results)

    models = await repo.list_models("forecast")
    assert len(models) == 5
    active = [m for m in models if m.is_active]
    assert len(active) == 1
    assert active[0].name == outcome.active
    assert "residuals" in active[0].metrics

    baseline = next(r for r in outcome.results if r.model_name == "SeasonalNaive")
    best = min(outcome.results, key=lambda r: r.smape)
    assert outcome.active == (best.model_name if best.smape <= baseline.smape else "SeasonalNaive")


@pytest.mark.asyncio
async def test_retraining_keeps_single_active(repo):
    await seed_history(repo, 90)
    registry = ModelRegistry(repo)
    await registry.train_and_evaluate("ch1", TODAY)
    await registry.train_and_evaluate("ch1", TODAY)

    assert sum(m.is_active for m in await repo.list_models("forecast")) == 1


@pytest.mark.asyncio
async def test_forecast_with_bands(repo):
    await seed_history(repo, 90)
    registry = ModelRegistry(repo)
    await registry.train_and_evaluate("ch1", TODAY)

    result = await registry.forecast("ch1", 14, TODAY)
    assert result["model"] == (await repo.get_active_model("forecast")).name
    assert len(result["points"]) == 14
    assert result["points"][0]["date"] == TODAY + timedelta(days=1)
    assert all(p["lower"] <= p["upper"] for p in result["points"])


@pytest.mark.asyncio
async def test_forecast_without_training_uses_baseline(repo):
    await seed_history(repo, 10)
    result = await ModelRegistry(repo).forecast("ch1", 3, TODAY)
    assert result["model"] == "SeasonalNaive"


@pytest.mark.asyncio
async def test_forecast_without_history(repo):
    assert await ModelRegistry(repo).forecast("missing", 7, TODAY) is None
