"""Pull request timeline and analytics."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..constants import DAY_NAMES, PR_SIZE_LIMITS, TOP_CONTRIBUTORS_LIMIT
from ..models import (
    ContributorPRStats,
    PRAnalytics,
    PRPatterns,
    PeakDay,
    PullRequestRecord,
    PullRequestState,
    TimelineEntry,
    TimelineResult,
)
from ..periods import as_utc, week_start_sunday
from .heatmap import day_of_week

SIZE_CATEGORIES = tuple(label for label, _ in PR_SIZE_LIMITS) + ("XL",)


def _date_key(moment) -> str:
    return as_utc(moment).date().isoformat()


def compute_timeline(pull_requests: Optional[Iterable[PullRequestRecord]]) -> TimelineResult:
    """Daily counts of opened, merged and closed pull requests.

    Every pull request adds one "opened" at its creation date. A merged one
    adds a "merged" at its merge date; one closed without merging adds a
    "closed" at its close date. Pull requests without a creation date are
    left out entirely.
    """
    if not pull_requests:
        return TimelineResult(entries=[])

    entries: Dict[str, TimelineEntry] = {}

    def entry_for(moment) -> TimelineEntry:
        key = _date_key(moment)
        if key not in entries:
            entries[key] = TimelineEntry(date=key)
        return entries[key]

    for pr in pull_requests:
        if pr.created_at is None:
            continue
        entry_for(pr.created_at).opened += 1
        if pr.merged_at is not None:
            entry_for(pr.merged_at).merged += 1
        elif pr.closed_at is not None:
            entry_for(pr.closed_at).closed += 1

    return TimelineResult(entries=[entries[key] for key in sorted(entries)])


def categorize_pr_size(lines_changed: int) -> str:
    """XS up to 10 lines, S up to 50, M up to 200, L up to 500, then XL."""
    for label, limit in PR_SIZE_LIMITS:
        if lines_changed <= limit:
            return label
    return "XL"


def calculate_pr_analytics(pull_requests: Optional[Iterable[PullRequestRecord]]) -> PRAnalytics:
    """Totals by state, averages, timeline and most active authors.

    Average time to merge is in whole hours over merged pull requests;
    average size is the mean of additions plus deletions.
    """
    prs: List[PullRequestRecord] = list(pull_requests or [])

    merge_hours = [pr.time_to_merge_hours for pr in prs if pr.time_to_merge_hours is not None]
    average_merge = round(sum(merge_hours) / len(merge_hours)) if merge_hours else 0
    average_size = round(sum(pr.lines_changed for pr in prs) / len(prs)) if prs else 0

    by_author: Dict[str, ContributorPRStats] = {}
    author_merge_hours: Dict[str, List[int]] = {}
    for pr in prs:
        stats = by_author.get(pr.author)
        if stats is None:
            stats = by_author[pr.author] = ContributorPRStats(username=pr.author)
        stats.pr_count += 1
        stats.lines_changed += pr.lines_changed
        if pr.time_to_merge_hours is not None:
            author_merge_hours.setdefault(pr.author, []).append(pr.time_to_merge_hours)

    for author, hours in author_merge_hours.items():
        by_author[author].average_time_to_merge = round(sum(hours) / len(hours), 1)

    top = sorted(by_author.values(), key=lambda s: s.pr_count, reverse=True)[:TOP_CONTRIBUTORS_LIMIT]

    return PRAnalytics(
        total_prs=len(prs),
        open_prs=sum(1 for pr in prs if pr.state is PullRequestState.OPEN),
        closed_prs=sum(1 for pr in prs if pr.state is PullRequestState.CLOSED),
        merged_prs=sum(1 for pr in prs if pr.state is PullRequestState.MERGED),
        average_time_to_merge=average_merge,
        average_pr_size=average_size,
        timeline=compute_timeline(prs),
        top_contributors=top,
    )


def analyze_pr_patterns(pull_requests: Optional[Iterable[PullRequestRecord]]) -> PRPatterns:
    """Weekly cadence, busiest weekday, size mix and merge rate."""
    prs: List[PullRequestRecord] = list(pull_requests or [])
    size_distribution = {label: 0 for label in SIZE_CATEGORIES}

    weekly: Dict[str, int] = {}
    per_day = [0] * 7
    for pr in prs:
        size_distribution[categorize_pr_size(pr.lines_changed)] += 1
        if pr.created_at is None:
            continue
        week = week_start_sunday(as_utc(pr.created_at).date()).isoformat()
        weekly[week] = weekly.get(week, 0) + 1
        per_day[day_of_week(pr.created_at)] += 1

    peak = PeakDay(day=DAY_NAMES[0], count=0)
    for index, count in enumerate(per_day):
        if count > peak.count:
            peak = PeakDay(day=DAY_NAMES[index], count=count)

    merged = sum(1 for pr in prs if pr.state is PullRequestState.MERGED)
    return PRPatterns(
        average_prs_per_week=round(sum(weekly.values()) / len(weekly), 1) if weekly else 0.0,
        peak_activity=peak,
        size_distribution=size_distribution,
        merge_rate=round(merged / len(prs) * 100, 1) if prs else 0.0,
    )
