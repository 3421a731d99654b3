"""Tests for growth curve fitting and early-view nowcasts."""

import pytest

from services.nowcast import (
    CurvePoint,
    VideoViews,
    duration_bucket,
    fit_growth_curve,
    fit_growth_curves_by_bucket,
    predict_from_curve,
)


def test_duration_buckets():
    assert duration_bucket(60) == "short"
    assert duration_bucket(61) == "medium"
    assert duration_bucket(1200) == "medium"
    assert duration_bucket(1201) == "long"


class TestFitGrowthCurve:
    def test_uniform_views_give_linear_curve(self):
        curve = fit_growth_curve([VideoViews("a", 300, [10.0] * 28)])
        assert len(curve) == 28
        assert curve[0].day == 1
        assert curve[6].median_pct == pytest.approx(7 / 28)
        assert curve[-1].median_pct == pytest.approx(1.0)
        assert curve[-1].sample_size == 1

    def test_ignores_short_and_empty_videos(self):
        videos = [
            VideoViews("short", 300, [10.0] * 10),
            VideoViews("silent", 300, [0.0] * 28),
        ]
        assert fit_growth_curve(videos) == []

    def test_quartiles_span_population(self):
        front_loaded = VideoViews("a", 300, [100.0] + [0.0] * 27)
        uniform = VideoViews("b", 300, [1.0] * 28)
        curve = fit_growth_curve([front_loaded, uniform])
        day1 = curve[0]
        assert day1.p25_pct < day1.median_pct < day1.p75_pct

    def test_by_bucket_keeps_all_and_drops_empty(self):
        videos = [
            VideoViews("s", 30, [5.0] * 28),
            VideoViews("m", 600, [5.0] * 28),
            VideoViews("l", 3600, [5.0] * 5),
        ]
        curves = fit_growth_curves_by_bucket(videos)
        assert set(curves) == {"all", "short", "medium"}
        assert curves["all"][0].sample_size == 2


class TestPredictFromCurve:
    @pytest.fixture
    def curve(self):
        return fit_growth_curve([VideoViews("a", 300, [10.0] * 28)])

    def test_scales_to_day_seven(self, curve):
        prediction = predict_from_curve(200, 2, curve)
        assert prediction.predicted_7d == 700
        assert prediction.low == prediction.high == 700

    def test_unchanged_from_day_seven(self, curve):
        prediction = predict_from_curve(900, 7, curve)
        assert (prediction.predicted_7d, prediction.low, prediction.high) == (900, 900, 900)

    def test_unchanged_without_curve(self):
        prediction = predict_from_curve(123.4, 2, [])
        assert (prediction.predicted_7d, prediction.low, prediction.high) == (123, 123, 123)

    def test_zero_median_point_returns_current(self):
        curve = [CurvePoint(2, 0.0, 0.0, 0.0), CurvePoint(7, 0.5, 0.4, 0.6)]
        assert predict_from_curve(50, 2, curve).predicted_7d == 50

    def test_range_uses_quartiles(self):
        curve = [CurvePoint(1, 0.2, 0.1, 0.4), CurvePoint(7, 0.6, 0.5, 0.8)]
        prediction = predict_from_curve(100, 1, curve)
        assert prediction.predicted_7d == 300
        assert prediction.low == 125  # 100 / 0.4 * 0.5
        assert prediction.high == 800  # 100 / 0.1 * 0.8
