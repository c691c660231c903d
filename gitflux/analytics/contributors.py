"""Per-contributor commit trends and period aggregation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from ..constants import ACTIVITY_WINDOWS
from ..models import (
    CommitCountPoint,
    CommitRecord,
    ContributorIdentity,
    ContributorTrend,
    ContributorTrendResult,
    Granularity,
    PeriodBucket,
    TrendDirection,
    TrendPoint,
)
from ..periods import TimePeriod, as_utc, granularity_for_period, parse_period, period_key, utc_now

logger = logging.getLogger(__name__)


def _direction(current: int, previous: Optional[int]) -> TrendDirection:
    if previous is None or current == previous:
        return TrendDirection.STABLE
    return TrendDirection.UP if current > previous else TrendDirection.DOWN


def compute_contributor_trends(
    records: Optional[Iterable[CommitRecord]],
    period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    now: Optional[datetime] = None,
) -> ContributorTrendResult:
    """Per-contributor commit counts over period buckets.

    Contributors are grouped by their tagged identity, so a handle and a
    display name never merge, and neither do two different display names of
    the same person. Each data point's direction compares it with the
    contributor's previous point; the first point is always stable.

    Args:
        records: Commit records, possibly None
        period: Requested period; selects day, week or month buckets
        now: Reference instant for the active-contributor window

    Returns:
        ContributorTrendResult with contributors ordered by total commits
    """
    resolved = parse_period(period)
    granularity = granularity_for_period(resolved)
    empty = ContributorTrendResult(contributors=[], period=resolved.value, granularity=granularity)
    if not records:
        return empty

    counts: Dict[ContributorIdentity, Dict[str, int]] = {}
    last_seen: Dict[ContributorIdentity, datetime] = {}
    avatars: Dict[ContributorIdentity, Optional[str]] = {}

    for record in records:
        if record.timestamp is None:
            continue
        identity = record.identity
        key = period_key(record.timestamp, granularity)
        per_period = counts.setdefault(identity, {})
        per_period[key] = per_period.get(key, 0) + 1

        stamp = as_utc(record.timestamp)
        if identity not in last_seen or stamp > last_seen[identity]:
            last_seen[identity] = stamp
        if not avatars.get(identity) and record.avatar_url:
            avatars[identity] = record.avatar_url

    if not counts:
        return empty

    trends: List[ContributorTrend] = []
    for identity, per_period in counts.items():
        points: List[TrendPoint] = []
        previous: Optional[int] = None
        for key in sorted(per_period):
            count = per_period[key]
            points.append(TrendPoint(period=key, count=count, direction=_direction(count, previous)))
            previous = count
        trends.append(
            ContributorTrend(
                identity=identity,
                data_points=points,
                total_commits=sum(per_period.values()),
                last_commit_at=last_seen[identity],
                avatar_url=avatars.get(identity),
            )
        )

    trends.sort(key=lambda trend: trend.total_commits, reverse=True)

    cutoff = as_utc(now or utc_now()) - timedelta(days=ACTIVITY_WINDOWS['active_days'])
    active = sum(1 for trend in trends if trend.last_commit_at >= cutoff)

    return ContributorTrendResult(
        contributors=trends,
        period=resolved.value,
        granularity=granularity,
        total_contributors=len(trends),
        active_contributors=active,
    )


def aggregate_commits_by_period(
    records: Optional[Iterable[CommitRecord]],
    granularity: Granularity,
) -> List[PeriodBucket]:
    """Commit counts and contributor names per bucket, oldest first."""
    if not records:
        return []

    buckets: Dict[str, PeriodBucket] = {}
    for record in records:
        if record.timestamp is None:
            continue
        key = period_key(record.timestamp, granularity)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = PeriodBucket(period=key, count=0, contributors=[])
        bucket.count += 1
        name = str(record.identity)
        if name not in bucket.contributors:
            bucket.contributors.append(name)

    return [buckets[key] for key in sorted(buckets)]


def transform_commit_activity(weekly_stats: Optional[Iterable[Dict[str, Any]]]) -> List[CommitCountPoint]:
    """Convert commit-activity statistics into dated weekly totals.

    Args:
        weekly_stats: Items with ``week`` (epoch seconds of the week start)
            and ``total``

    Returns:
        One point per week; malformed items are skipped
    """
    points: List[CommitCountPoint] = []
    for week in weekly_stats or []:
        try:
            start = datetime.fromtimestamp(int(week["week"]), tz=timezone.utc)
            total = int(week.get("total") or 0)
        except (AttributeError, KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            logger.warning(f"Skipping malformed weekly statistic {week!r}: {exc}")
            continue
        points.append(CommitCountPoint(date=start.date().isoformat(), count=total))
    return points
