"""Branch status, health and the combined branch/pull request analysis."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional, Set, Union

from ..constants import ACTIVITY_WINDOWS, BRANCH_HEALTH
from ..models import (
    BranchAnalytics,
    BranchData,
    BranchPRAnalysis,
    BranchPRData,
    BranchRecord,
    BranchStatus,
    PullRequestRecord,
    PullRequestState,
)
from ..periods import TimePeriod, as_utc, filter_by_period, get_time_period_bounds, parse_period, utc_now
from .pull_requests import calculate_pr_analytics
from .reviews import calculate_review_analytics


def merged_head_refs(pull_requests: Optional[Iterable[PullRequestRecord]]) -> Set[str]:
    """Names of branches whose pull request was merged."""
    return {
        pr.head_ref
        for pr in pull_requests or []
        if pr.state is PullRequestState.MERGED and pr.head_ref
    }


def branch_status(
    branch: BranchRecord,
    merged_refs: Optional[Set[str]] = None,
    now: Optional[datetime] = None,
) -> BranchStatus:
    """Derive a branch's lifecycle status.

    The default branch and any branch with a commit in the last 30 days are
    active. Otherwise a branch that was the head of a merged pull request is
    merged, and everything else is stale.
    """
    if branch.is_default:
        return BranchStatus.ACTIVE

    if branch.last_commit_timestamp is not None:
        cutoff = as_utc(now or utc_now()) - timedelta(days=ACTIVITY_WINDOWS['active_days'])
        if as_utc(branch.last_commit_timestamp) >= cutoff:
            return BranchStatus.ACTIVE

    if merged_refs and branch.name in merged_refs:
        return BranchStatus.MERGED
    return BranchStatus.STALE


def branch_health_score(
    branch: BranchRecord,
    behind: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """Score a branch from 0 to 100 by recency and drift.

    Args:
        branch: Branch to score
        behind: Commits behind the default branch, defaults to ``branch.behind``
        now: Reference instant

    Returns:
        100 minus staleness and drift penalties; the default branch gets a
        bonus capped at 100
    """
    if branch.last_commit_timestamp is None:
        idle_days = None
    else:
        idle_days = (as_utc(now or utc_now()) - as_utc(branch.last_commit_timestamp)).days

    score = 100
    if idle_days is None or idle_days > ACTIVITY_WINDOWS['stale_days']:
        score -= BRANCH_HEALTH['stale_penalty']
    elif idle_days > ACTIVITY_WINDOWS['active_days']:
        score -= BRANCH_HEALTH['idle_penalty']
    elif idle_days > 7:
        score -= BRANCH_HEALTH['recent_penalty']

    if branch.is_default:
        score = min(100, score + BRANCH_HEALTH['default_bonus'])

    if behind is None:
        behind = branch.behind
    if behind > 50:
        score -= BRANCH_HEALTH['far_behind_penalty']
    elif behind > 10:
        score -= BRANCH_HEALTH['behind_penalty']

    return max(0, score)


def calculate_branch_analytics(
    branches: Optional[Iterable[BranchRecord]],
    pull_requests: Optional[Iterable[PullRequestRecord]] = None,
    now: Optional[datetime] = None,
) -> BranchAnalytics:
    """Status counts and per-branch details, most recently updated first."""
    current = now or utc_now()
    merged_refs = merged_head_refs(pull_requests)

    details = [
        BranchData(
            branch=branch,
            status=branch_status(branch, merged_refs, current),
            health_score=branch_health_score(branch, now=current),
        )
        for branch in branches or []
    ]
    # branches without a known commit date sort last
    details.sort(
        key=lambda data: (
            data.branch.last_commit_timestamp is not None,
            as_utc(data.branch.last_commit_timestamp).timestamp() if data.branch.last_commit_timestamp else 0.0,
        ),
        reverse=True,
    )

    return BranchAnalytics(
        total_branches=len(details),
        active_branches=sum(1 for d in details if d.status is BranchStatus.ACTIVE),
        merged_branches=sum(1 for d in details if d.status is BranchStatus.MERGED),
        stale_branches=sum(1 for d in details if d.status is BranchStatus.STALE),
        branches=details,
    )


def generate_branch_pr_analysis(
    data: Optional[BranchPRData],
    period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    now: Optional[datetime] = None,
) -> BranchPRAnalysis:
    """Branch, pull request and review analytics for one period.

    Pull requests are kept when created inside the period. Branches are kept
    when their last commit falls inside it or its date is unknown. Only
    reviews of kept pull requests count.
    """
    resolved = parse_period(period)
    current = now or utc_now()
    if data is None:
        branches, pull_requests, reviews = [], [], []
    else:
        branches, pull_requests, reviews = data.branches, data.pull_requests, data.reviews

    kept_prs = filter_by_period(pull_requests, resolved, lambda pr: pr.created_at, now=current)

    since = get_time_period_bounds(resolved, current).since
    kept_branches = [
        branch
        for branch in branches
        if since is None
        or branch.last_commit_timestamp is None
        or as_utc(branch.last_commit_timestamp) >= as_utc(since)
    ]

    numbers = {pr.number for pr in kept_prs}
    kept_reviews = [review for review in reviews if review.pr_number in numbers]

    return BranchPRAnalysis(
        branches=calculate_branch_analytics(kept_branches, pull_requests, now=current),
        pull_requests=calculate_pr_analytics(kept_prs),
        reviews=calculate_review_analytics(kept_reviews, kept_prs),
        analysis_date=current,
        period=resolved.value,
    )
