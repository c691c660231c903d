import pytest

from gitflux.analytics import analyze_activity_pattern, consistency_score, least_squares_slope, linear_trend
from gitflux.models import ActivityPattern, LinearTrend


@pytest.mark.parametrize(
    "values, expected",
    [
        ([1, 2, 3, 4], LinearTrend.INCREASING),
        ([4, 3, 2, 1], LinearTrend.DECREASING),
        ([5, 5, 5], LinearTrend.STABLE),
        ([1, 1.05, 1.1], LinearTrend.STABLE),
        ([7], LinearTrend.STABLE),
        ([], LinearTrend.STABLE),
    ],
)
def test_linear_trend(values, expected):
    assert linear_trend(values) is expected


def test_least_squares_slope():
    assert least_squares_slope([1, 3, 5]) == pytest.approx(2.0)
    assert least_squares_slope([3]) == 0.0


@pytest.mark.parametrize(
    "values, expected",
    [([1, 3], 50), ([0, 10], 0), ([5, 5, 5], 100), ([], 0), ([0, 0], 0), ([1, 100], 0)],
)
def test_consistency_score(values, expected):
    assert consistency_score(values) == expected


def test_activity_pattern():
    assert analyze_activity_pattern([1, 3]) == ActivityPattern(
        trend=LinearTrend.INCREASING,
        consistency_score=50,
        average=2.0,
        peak=3,
    )


def test_activity_pattern_for_empty_series():
    pattern = analyze_activity_pattern(None)

    assert pattern.trend is LinearTrend.STABLE
    assert pattern.consistency_score == 0
    assert pattern.average == 0.0
    assert pattern.peak == 0
