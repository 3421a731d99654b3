"""Tests for the composite video quality score."""

import pytest

from services.quality_score import DayStats, compute_quality_score


def test_empty_window_has_no_score():
    assert compute_quality_score([]) is None


def test_at_benchmark_scores_full_marks():
    # 100 views/day, 3 minutes per view, 50 engagements per 1k views
    stats = [DayStats(views=100, watch_time_minutes=300, likes=4, comments=1)] * 28
    result = compute_quality_score(stats)

    assert result.velocity_score == pytest.approx(100)
    assert result.efficiency_score == pytest.approx(100)
    assert result.conversion_score == pytest.approx(100)
    assert result.score == pytest.approx(100)
    assert result.explanation["verdict"] == "High Quality"
    assert result.explanation["days"] == 28


def test_components_are_capped():
    result = compute_quality_score([DayStats(views=10_000, watch_time_minutes=100_000, likes=5_000)])
    assert result.velocity_score == 100
    assert result.efficiency_score == 100
    assert result.conversion_score == 100


def test_weighted_blend():
    # velocity 75 -> 75, efficiency 2.25 -> 75, conversion 0 -> 0
    stats = [DayStats(views=75, watch_time_minutes=168.75)] * 2
    result = compute_quality_score(stats)
    assert result.score == pytest.approx(0.4 * 75 + 0.4 * 75)
    assert result.explanation["verdict"] == "Average"


def test_zero_views():
    result = compute_quality_score([DayStats(views=0)])
    assert result.score == 0
    assert result.explanation["verdict"] == "Needs Improvement"
