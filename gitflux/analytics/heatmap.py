"""Day-of-week commit heatmap."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..constants import DAY_NAMES
from ..models import CommitRecord, DailyCell, DayBucket, HeatmapResult, PeakDay
from ..periods import TimePeriod, as_utc


def day_of_week(moment) -> int:
    """0 = Sunday .. 6 = Saturday, taken from the UTC calendar day."""
    return (as_utc(moment).weekday() + 1) % 7


def empty_heatmap() -> HeatmapResult:
    return HeatmapResult(
        buckets=[],
        days=[],
        total_commits=0,
        peak_day=PeakDay(day=DAY_NAMES[0], count=0),
        average_per_day=0.0,
    )


def compute_heatmap(
    records: Optional[Iterable[CommitRecord]],
    period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
) -> HeatmapResult:
    """Bucket commits by day of week.

    Records are expected to be fetched for ``period`` already; they are not
    filtered again here. Commits without a valid timestamp are skipped and
    do not count toward the total.

    Algorithm:
    1. Count commits and distinct contributors per weekday and per date
    2. Peak day is the weekday with the highest count; ties go to the day
       that comes first in a Sunday-first week
    3. Average per day is always ``total / 7``

    Args:
        records: Commit records, possibly None
        period: Period the records were fetched for

    Returns:
        HeatmapResult; the empty heatmap when nothing is countable
    """
    if not records:
        return empty_heatmap()

    buckets: Dict[int, DayBucket] = {}
    cells: Dict[Tuple[str, int], DailyCell] = {}

    for record in records:
        if record.timestamp is None:
            continue
        weekday = day_of_week(record.timestamp)
        identity = record.identity

        bucket = buckets.get(weekday)
        if bucket is None:
            bucket = buckets[weekday] = DayBucket(day_of_week=weekday, day_name=DAY_NAMES[weekday])
        bucket.count += 1
        bucket.contributors.add(identity)

        date_key = as_utc(record.timestamp).date().isoformat()
        cell = cells.get((date_key, weekday))
        if cell is None:
            cell = cells[(date_key, weekday)] = DailyCell(date=date_key, day_of_week=weekday)
        cell.count += 1
        cell.contributors.add(identity)

    total = sum(bucket.count for bucket in buckets.values())
    if total == 0:
        return empty_heatmap()

    ordered: List[DayBucket] = [buckets[day] for day in sorted(buckets)]
    peak = PeakDay(day=DAY_NAMES[0], count=0)
    for bucket in ordered:
        if bucket.count > peak.count:
            peak = PeakDay(day=bucket.day_name, count=bucket.count)

    return HeatmapResult(
        buckets=ordered,
        days=sorted(cells.values(), key=lambda cell: cell.date),
        total_commits=total,
        peak_day=peak,
        average_per_day=total / 7,
    )
