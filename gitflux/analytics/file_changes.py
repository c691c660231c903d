"""File change frequency analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Union

from ..constants import ACTIVITY_WINDOWS, HOTSPOT_THRESHOLDS
from ..file_types import categorize_file_type
from ..models import (
    CommitWithFiles,
    FileChangeAnalysis,
    FileChangeData,
    FileChangePatterns,
    FileStatus,
    FileTrendPoint,
    FileTypeData,
)
from ..periods import TimePeriod, as_utc, parse_period, utc_now, week_start_sunday

DAILY_TREND_PERIODS = (TimePeriod.DAYS_30, TimePeriod.DAYS_90)


@dataclass
class _FileTally:
    count: int = 0
    last_changed: Optional[datetime] = None
    is_deleted: bool = False
    per_date: Dict[str, int] = field(default_factory=dict)


def generate_file_trend_data(
    per_date: Dict[str, int],
    period: Union[str, TimePeriod],
) -> List[FileTrendPoint]:
    """Trend points for one file.

    Daily points for 30d and 90d; weekly points keyed by the Sunday that
    starts the week for longer periods.
    """
    if not per_date:
        return []

    if parse_period(period) in DAILY_TREND_PERIODS:
        return [FileTrendPoint(date=key, changes=per_date[key]) for key in sorted(per_date)]

    weekly: Dict[str, int] = {}
    for key, count in per_date.items():
        week = week_start_sunday(date.fromisoformat(key)).isoformat()
        weekly[week] = weekly.get(week, 0) + count
    return [FileTrendPoint(date=key, changes=weekly[key]) for key in sorted(weekly)]


def file_type_breakdown(files: Iterable[FileChangeData]) -> List[FileTypeData]:
    """Change counts per file category, largest first."""
    totals: Dict[str, FileTypeData] = {}
    grand_total = 0
    for data in files:
        kind = categorize_file_type(data.filename)
        entry = totals.get(kind.category)
        if entry is None:
            entry = totals[kind.category] = FileTypeData(
                category=kind.category, change_count=0, percentage=0.0, color=kind.color
            )
        entry.change_count += data.change_count
        grand_total += data.change_count

    for entry in totals.values():
        entry.percentage = entry.change_count / grand_total * 100 if grand_total else 0.0
    return sorted(totals.values(), key=lambda entry: entry.change_count, reverse=True)


def compute_file_change_analysis(
    commits: Optional[Iterable[CommitWithFiles]],
    period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    now: Optional[datetime] = None,
) -> FileChangeAnalysis:
    """Tally how often each file changed across the given commits.

    Every file entry of a commit is one change event. A file's percentage is
    its share of all change events, so the percentages add up to 100. Files
    are ordered by change count, ties keeping first-seen order. The deleted
    flag follows the file's most recent change. Commits without a valid
    timestamp are ignored.

    Args:
        commits: Commits with their file lists, possibly None
        period: Period the commits were fetched for; sets trend granularity
        now: Analysis timestamp (defaults to the current instant)

    Returns:
        FileChangeAnalysis, with no files and zero total for empty input
    """
    resolved = parse_period(period)
    analysis_date = now or utc_now()
    tallies: Dict[str, _FileTally] = {}
    total = 0

    for commit in commits or []:
        if commit.timestamp is None:
            continue
        stamp = as_utc(commit.timestamp)
        date_key = stamp.date().isoformat()
        for change in commit.files:
            tally = tallies.get(change.filename)
            if tally is None:
                tally = tallies[change.filename] = _FileTally()
            tally.count += 1
            if tally.last_changed is None or stamp >= tally.last_changed:
                tally.last_changed = stamp
                tally.is_deleted = change.status is FileStatus.REMOVED
            tally.per_date[date_key] = tally.per_date.get(date_key, 0) + 1
            total += 1

    files = [
        FileChangeData(
            filename=filename,
            change_count=tally.count,
            percentage=tally.count / total * 100,
            last_changed=tally.last_changed,
            file_type=categorize_file_type(filename).category,
            is_deleted=tally.is_deleted,
            trend_data=generate_file_trend_data(tally.per_date, resolved),
        )
        for filename, tally in tallies.items()
    ]
    files.sort(key=lambda data: data.change_count, reverse=True)

    return FileChangeAnalysis(
        files=files,
        total_changes=total,
        analysis_date=analysis_date,
        period=resolved.value,
        file_type_breakdown=file_type_breakdown(files),
    )


def analyze_file_change_patterns(
    files: Optional[Iterable[FileChangeData]],
    now: Optional[datetime] = None,
) -> FileChangePatterns:
    """Split files into hotspots, recently active, stale and deleted.

    The hotspot threshold is ``max(1.5 * mean change count, 5)``. Recently
    active means changed within 30 days and stale means untouched for more
    than 90, so no file is both. Deleted files only appear in
    ``deleted_files``.
    """
    items = list(files or [])
    if items:
        mean = sum(data.change_count for data in items) / len(items)
    else:
        mean = 0.0
    threshold = max(mean * HOTSPOT_THRESHOLDS['mean_multiplier'], HOTSPOT_THRESHOLDS['minimum_changes'])

    current = as_utc(now or utc_now())
    active_since = current - timedelta(days=ACTIVITY_WINDOWS['active_days'])
    stale_before = current - timedelta(days=ACTIVITY_WINDOWS['stale_days'])

    live = [data for data in items if not data.is_deleted]
    return FileChangePatterns(
        hotspots=[data for data in live if data.change_count >= threshold],
        recently_active=[data for data in live if as_utc(data.last_changed) >= active_since],
        stale_files=[data for data in live if as_utc(data.last_changed) < stale_before],
        deleted_files=[data for data in items if data.is_deleted],
        hotspot_threshold=threshold,
    )
