"""Code review analytics."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..constants import TOP_CONTRIBUTORS_LIMIT
from ..models import (
    PullRequestRecord,
    ReviewAnalytics,
    ReviewerStats,
    ReviewPattern,
    ReviewRecord,
    ReviewState,
)
from ..periods import as_utc


def _hours_between(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600


def _mean(values: List[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


def calculate_review_analytics(
    reviews: Optional[Iterable[ReviewRecord]],
    pull_requests: Optional[Iterable[PullRequestRecord]] = None,
) -> ReviewAnalytics:
    """Review volume, responsiveness and reviewer breakdown.

    Args:
        reviews: Submitted reviews
        pull_requests: Pull requests the reviews belong to; used for the
            per-PR average and the response times

    Returns:
        ReviewAnalytics; times are in hours, rates in percent
    """
    items = list(reviews or [])
    prs = list(pull_requests or [])

    first_review: Dict[int, datetime] = {}
    first_approval: Dict[int, datetime] = {}
    per_reviewer: Dict[str, List[ReviewRecord]] = {}
    patterns: Dict[str, ReviewPattern] = {}

    for review in items:
        per_reviewer.setdefault(review.reviewer_login, []).append(review)
        if review.submitted_at is None:
            continue

        submitted = as_utc(review.submitted_at)
        if review.pr_number not in first_review or submitted < first_review[review.pr_number]:
            first_review[review.pr_number] = submitted
        if review.state is ReviewState.APPROVED:
            if review.pr_number not in first_approval or submitted < first_approval[review.pr_number]:
                first_approval[review.pr_number] = submitted

        key = submitted.date().isoformat()
        pattern = patterns.get(key)
        if pattern is None:
            pattern = patterns[key] = ReviewPattern(date=key)
        pattern.reviews_given += 1
        if review.state is ReviewState.APPROVED:
            pattern.approvals_given += 1
        elif review.state is ReviewState.CHANGES_REQUESTED:
            pattern.change_requests_given += 1

    to_first_review: List[float] = []
    to_approval: List[float] = []
    for pr in prs:
        if pr.created_at is None:
            continue
        if pr.number in first_review:
            to_first_review.append(_hours_between(pr.created_at, first_review[pr.number]))
        if pr.number in first_approval:
            to_approval.append(_hours_between(pr.created_at, first_approval[pr.number]))

    reviewers = []
    for login, given in per_reviewer.items():
        count = len(given)
        approvals = sum(1 for r in given if r.state is ReviewState.APPROVED)
        change_requests = sum(1 for r in given if r.state is ReviewState.CHANGES_REQUESTED)
        reviewers.append(
            ReviewerStats(
                username=login,
                review_count=count,
                approval_rate=approvals / count * 100,
                change_request_rate=change_requests / count * 100,
            )
        )
    reviewers.sort(key=lambda stats: stats.review_count, reverse=True)

    return ReviewAnalytics(
        total_reviews=len(items),
        average_reviews_per_pr=round(len(items) / len(prs), 2) if prs else 0.0,
        average_time_to_first_review=_mean(to_first_review),
        average_time_to_approval=_mean(to_approval),
        top_reviewers=reviewers[:TOP_CONTRIBUTORS_LIMIT],
        review_patterns=[patterns[key] for key in sorted(patterns)],
    )
