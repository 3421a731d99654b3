"""Tests for competitor momentum and hit detection."""

from datetime import date, timedelta

import pytest

from services.momentum import Snapshot, compute_momentum

START = date(2026, 2, 1)


def snapshots(view_counts):
    return [Snapshot(START + timedelta(days=i), v) for i, v in enumerate(view_counts)]


def test_hit_on_breakout_day():
    history = snapshots([1000, 1100, 1200, 2500])
    result = compute_momentum(history, START + timedelta(days=3))

    assert result.velocity_24h == 1300
    assert result.velocity_7d == 1500
    assert result.is_hit is True
    assert result.momentum_score == pytest.approx(1300 / 500)


def test_steady_growth_is_not_a_hit():
    history = snapshots([0, 2000, 4000, 6000, 8000])
    result = compute_momentum(history, START + timedelta(days=4))
    assert result.velocity_24h == 2000
    assert result.is_hit is False


def test_absolute_floor():
    history = snapshots([100, 110, 120, 900])
    assert compute_momentum(history, START + timedelta(days=3)).is_hit is False


def test_seven_day_velocity_uses_week_old_snapshot():
    history = snapshots([100 * i for i in range(10)])
    result = compute_momentum(history, START + timedelta(days=9))
    assert result.velocity_7d == 700


def test_missing_or_first_day_returns_none():
    history = snapshots([1000, 1100])
    assert compute_momentum(history, START) is None
    assert compute_momentum(history, START + timedelta(days=5)) is None
    assert compute_momentum([], START) is None


def test_unordered_snapshots_are_sorted():
    history = list(reversed(snapshots([1000, 1100, 1200, 2500])))
    assert compute_momentum(history, START + timedelta(days=3)).velocity_24h == 1300


def test_view_count_corrections_clamp_to_zero():
    history = snapshots([1000, 900])
    result = compute_momentum(history, START + timedelta(days=1))
    assert result.velocity_24h == 0
    assert result.momentum_score == 0.0


def test_acceleration_trend():
    accelerating = compute_momentum(snapshots([0, 100, 300, 700, 1500]), START + timedelta(days=4))
    assert accelerating.acceleration_trend == "accelerating"
    assert accelerating.acceleration > 0

    decelerating = compute_momentum(snapshots([0, 800, 1400, 1700, 1800]), START + timedelta(days=4))
    assert decelerating.acceleration_trend == "decelerating"


def surge(steady_days: int, surge_days: int) -> list:
    counts = [0]
    for _ in range(steady_days):
        counts.append(counts[-1] + 100)
    for _ in range(surge_days):
        counts.append(counts[-1] + 1000)
    return snapshots(counts)


def test_three_surge_days_are_sustained():
    history = surge(10, 3)
    result = compute_momentum(history, history[-1].day)

    assert result.sustained_days == 3
    assert result.is_sustained is True


def test_two_surge_days_are_not_sustained():
    history = surge(10, 2)
    result = compute_momentum(history, history[-1].day)

    assert result.sustained_days == 2
    assert result.is_sustained is False
