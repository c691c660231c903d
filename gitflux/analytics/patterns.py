"""Shape analysis of activity series."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ..constants import TREND_THRESHOLDS
from ..models import ActivityPattern, LinearTrend


def least_squares_slope(values: Sequence[float]) -> float:
    """Slope of the ordinary least-squares fit of value against index."""
    n = len(values)
    if n < 2:
        return 0.0

    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    numerator = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    denominator = sum((i - mean_x) ** 2 for i in range(n))
    return numerator / denominator if denominator else 0.0


def linear_trend(values: Optional[Sequence[float]]) -> LinearTrend:
    """Classify a series as increasing, decreasing or stable.

    A slope above ``+0.1`` per step is increasing, below ``-0.1`` decreasing.
    """
    slope = least_squares_slope(list(values or []))
    epsilon = TREND_THRESHOLDS['slope_epsilon']
    if slope > epsilon:
        return LinearTrend.INCREASING
    if slope < -epsilon:
        return LinearTrend.DECREASING
    return LinearTrend.STABLE


def consistency_score(values: Optional[Sequence[float]]) -> int:
    """Score from 0 (erratic) to 100 (perfectly even).

    Uses the coefficient of variation: ``100 - (stddev / mean) * 100``,
    clamped to [0, 100]. A series with a zero mean scores 0.
    """
    series = list(values or [])
    if not series:
        return 0

    mean = sum(series) / len(series)
    if mean == 0:
        return 0

    std_dev = math.sqrt(sum((v - mean) ** 2 for v in series) / len(series))
    return round(max(0.0, min(100.0, 100 - (std_dev / mean) * 100)))


def analyze_activity_pattern(values: Optional[Sequence[float]]) -> ActivityPattern:
    """Trend, consistency, average and peak of an activity series."""
    series = list(values or [])
    if not series:
        return ActivityPattern(trend=LinearTrend.STABLE, consistency_score=0, average=0.0, peak=0)

    return ActivityPattern(
        trend=linear_trend(series),
        consistency_score=consistency_score(series),
        average=round(sum(series) / len(series), 2),
        peak=max(series),
    )
