from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from gitflux.analytics import (
    branch_health_score,
    branch_status,
    calculate_branch_analytics,
    calculate_review_analytics,
    generate_branch_pr_analysis,
    merged_head_refs,
)
from gitflux.models import (
    BranchPRData,
    BranchRecord,
    BranchStatus,
    PullRequestRecord,
    PullRequestState,
    RepositoryInfo,
    ReviewRecord,
    ReviewState,
)

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def branch(name, days_ago, is_default=False):
    stamp = None if days_ago is None else NOW - timedelta(days=days_ago)
    return BranchRecord(
        name=name,
        last_commit_sha=f"sha-{name}",
        last_commit_timestamp=stamp,
        is_default=is_default,
    )


def pull(number, created, state=PullRequestState.OPEN, head_ref=None, merged=None):
    return PullRequestRecord(
        number=number,
        title=f"PR {number}",
        state=state,
        created_at=created,
        author="alice",
        merged_at=merged,
        closed_at=merged,
        head_ref=head_ref,
    )


def review(pr_number, login, state, submitted):
    return ReviewRecord(pr_number=pr_number, reviewer_login=login, state=state, submitted_at=submitted)


# =============================================================================
# Branches
# =============================================================================


def test_merged_head_refs_only_counts_merged_pull_requests():
    prs = [
        pull(1, NOW, PullRequestState.MERGED, head_ref="feature"),
        pull(2, NOW, PullRequestState.CLOSED, head_ref="abandoned"),
        pull(3, NOW, PullRequestState.MERGED),
    ]

    assert merged_head_refs(prs) == {"feature"}
    assert merged_head_refs(None) == set()


def test_branch_status_rules():
    merged = {"feature"}

    assert branch_status(branch("main", 400, is_default=True), merged, NOW) is BranchStatus.ACTIVE
    assert branch_status(branch("feature", 5), merged, NOW) is BranchStatus.ACTIVE
    assert branch_status(branch("feature", 60), merged, NOW) is BranchStatus.MERGED
    assert branch_status(branch("spike", 60), merged, NOW) is BranchStatus.STALE
    assert branch_status(branch("mystery", None), merged, NOW) is BranchStatus.STALE


@pytest.mark.parametrize(
    "days_ago, is_default, behind, expected",
    [
        (3, False, 0, 100),
        (10, False, 0, 90),
        (45, False, 0, 75),
        (100, False, 0, 50),
        (45, True, 0, 95),
        (3, True, 0, 100),
        (3, False, 20, 90),
        (3, False, 60, 80),
        (100, False, 60, 30),
        (None, False, 0, 50),
    ],
)
def test_branch_health_score(days_ago, is_default, behind, expected):
    record = branch("b", days_ago, is_default=is_default)

    assert branch_health_score(record, behind=behind, now=NOW) == expected


def test_branch_health_score_uses_recorded_drift():
    record = replace(branch("b", 3), behind=60)

    assert branch_health_score(record, now=NOW) == 80
    assert branch_health_score(record, behind=0, now=NOW) == 100


def test_branch_analytics_orders_newest_first_with_undated_last():
    branches = [branch("old", 100), branch("undated", None), branch("main", 1, is_default=True), branch("mid", 20)]

    analytics = calculate_branch_analytics(branches, [], now=NOW)

    assert [d.branch.name for d in analytics.branches] == ["main", "mid", "old", "undated"]
    assert analytics.total_branches == 4
    assert analytics.active_branches == 2
    assert analytics.stale_branches == 2
    assert analytics.merged_branches == 0


# =============================================================================
# Reviews
# =============================================================================


def test_review_analytics():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    prs = [pull(1, start), pull(2, start)]
    reviews = [
        review(1, "bob", ReviewState.COMMENTED, start + timedelta(hours=2)),
        review(1, "bob", ReviewState.APPROVED, start + timedelta(hours=6)),
        review(2, "carol", ReviewState.CHANGES_REQUESTED, start + timedelta(hours=4)),
        review(2, "carol", ReviewState.APPROVED, start + timedelta(hours=6)),
    ]

    analytics = calculate_review_analytics(reviews, prs)

    assert analytics.total_reviews == 4
    assert analytics.average_reviews_per_pr == 2.0
    assert analytics.average_time_to_first_review == 3.0
    assert analytics.average_time_to_approval == 6.0
    assert [(r.username, r.review_count) for r in analytics.top_reviewers] == [("bob", 2), ("carol", 2)]
    assert analytics.top_reviewers[0].approval_rate == pytest.approx(50.0)
    assert analytics.top_reviewers[0].change_request_rate == 0
    assert analytics.top_reviewers[1].change_request_rate == pytest.approx(50.0)

    [pattern] = analytics.review_patterns
    assert pattern.date == "2024-01-01"
    assert pattern.reviews_given == 4
    assert pattern.approvals_given == 2
    assert pattern.change_requests_given == 1


def test_review_analytics_on_empty_input():
    analytics = calculate_review_analytics(None)

    assert analytics.total_reviews == 0
    assert analytics.average_reviews_per_pr == 0.0
    assert analytics.average_time_to_first_review == 0.0
    assert analytics.top_reviewers == []
    assert analytics.review_patterns == []


# =============================================================================
# Combined analysis
# =============================================================================


def test_branch_pr_analysis_filters_by_period():
    recent = NOW - timedelta(days=5)
    old = NOW - timedelta(days=90)
    data = BranchPRData(
        repository=RepositoryInfo(name="repo", full_name="octo/repo", default_branch="main"),
        branches=[branch("main", 2, is_default=True), branch("ancient", 200), branch("feature", None)],
        pull_requests=[
            pull(1, recent),
            pull(2, old, PullRequestState.MERGED, head_ref="feature", merged=old + timedelta(hours=3)),
        ],
        reviews=[
            review(1, "bob", ReviewState.APPROVED, recent + timedelta(hours=1)),
            review(2, "carol", ReviewState.APPROVED, old + timedelta(hours=1)),
        ],
    )

    analysis = generate_branch_pr_analysis(data, "30d", now=NOW)

    assert analysis.period == "30d"
    assert analysis.analysis_date == NOW
    assert analysis.pull_requests.total_prs == 1
    assert analysis.reviews.total_reviews == 1
    assert [r.username for r in analysis.reviews.top_reviewers] == ["bob"]
    statuses = {d.branch.name: d.status for d in analysis.branches.branches}
    assert statuses == {"main": BranchStatus.ACTIVE, "feature": BranchStatus.MERGED}


def test_branch_pr_analysis_without_data():
    analysis = generate_branch_pr_analysis(None, "90d", now=NOW)

    assert analysis.branches.total_branches == 0
    assert analysis.pull_requests.total_prs == 0
    assert analysis.reviews.total_reviews == 0
