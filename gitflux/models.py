"""Domain models shared across the gitflux analytics toolkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple


# =============================================================================
# Enumerations
# =============================================================================


class IdentityKind(str, Enum):
    """How a contributor was identified."""

    HANDLE = "handle"
    DISPLAY_NAME = "display_name"


class FileStatus(str, Enum):
    """Change status of a file within a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class PullRequestState(str, Enum):
    """Pull request state, with ``merged`` refining ``closed``."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class ReviewState(str, Enum):
    """Submitted review verdicts."""

    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"


class BranchStatus(str, Enum):
    """Derived branch lifecycle status."""

    ACTIVE = "active"
    STALE = "stale"
    MERGED = "merged"


class TrendDirection(str, Enum):
    """Point-to-point movement of a contributor trend."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class LinearTrend(str, Enum):
    """Direction of a least-squares fit over a series."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class Granularity(str, Enum):
    """Bucket width for period aggregations."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# =============================================================================
# Raw Records
# =============================================================================


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    """Rate limit metadata carried by every API response."""

    remaining: int
    reset: int  # epoch seconds
    limit: int


@dataclass(frozen=True, slots=True)
class ContributorIdentity:
    """Tagged contributor identity.

    Two identities are equal only when both kind and value match, so a handle
    ``alice`` and a display name ``alice`` are different contributors, and
    commits authored under different display names are never merged.
    """

    kind: IdentityKind
    value: str

    @classmethod
    def of(cls, login: Optional[str], display_name: str) -> "ContributorIdentity":
        """Prefer the account handle, fall back to the free-text author name."""
        if login:
            return cls(IdentityKind.HANDLE, login)
        return cls(IdentityKind.DISPLAY_NAME, display_name or "")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """Single commit as listed by the commits endpoint.

    ``timestamp`` is None when upstream sent an unparsable date; such
    records are skipped by every aggregation.
    """

    id: str
    author_login: Optional[str]
    author_display_name: str
    timestamp: Optional[datetime]
    message: str = ""
    avatar_url: Optional[str] = None

    @property
    def identity(self) -> ContributorIdentity:
        return ContributorIdentity.of(self.author_login, self.author_display_name)


@dataclass(frozen=True, slots=True)
class FileChangeRecord:
    """One file touched by a commit."""

    commit_id: str
    filename: str
    status: FileStatus
    changed_lines: int = 0
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True, slots=True)
class CommitWithFiles:
    """A commit together with the files it changed."""

    commit: CommitRecord
    files: Tuple[FileChangeRecord, ...] = ()

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.commit.timestamp


@dataclass(frozen=True, slots=True)
class PullRequestRecord:
    """Pull request metadata."""

    number: int
    title: str
    state: PullRequestState
    created_at: Optional[datetime]
    author: str
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    additions: int = 0
    deletions: int = 0
    labels: FrozenSet[str] = frozenset()
    is_draft: bool = False
    head_ref: Optional[str] = None

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions

    @property
    def time_to_merge_hours(self) -> Optional[int]:
        """Whole hours from creation to merge, or None if unmerged."""
        if self.merged_at is None or self.created_at is None:
            return None
        return round((self.merged_at - self.created_at).total_seconds() / 3600)


@dataclass(frozen=True, slots=True)
class ReviewRecord:
    """A submitted pull request review."""

    pr_number: int
    reviewer_login: str
    state: ReviewState
    submitted_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class BranchRecord:
    """Branch head metadata."""

    name: str
    last_commit_sha: str
    last_commit_timestamp: Optional[datetime]
    last_commit_author: str = ""
    last_commit_message: str = ""
    is_default: bool = False
    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True, slots=True)
class ContributorRecord:
    """Repository contributor as returned by the contributors endpoint."""

    login: str
    contributions: int
    avatar_url: str = ""
    html_url: str = ""
    type: str = "User"


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Repository metadata."""

    name: str
    full_name: str
    default_branch: str
    description: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    language: Optional[str] = None
    private: bool = False
    html_url: str = ""


@dataclass(frozen=True, slots=True)
class TimeBounds:
    """Concrete bounds for a time window; None means unbounded."""

    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def to_params(self) -> Dict[str, str]:
        """Render the bounds as commits-endpoint query parameters."""
        params: Dict[str, str] = {}
        if self.since is not None:
            params["since"] = self.since.isoformat()
        if self.until is not None:
            params["until"] = self.until.isoformat()
        return params


# =============================================================================
# Fetch Payloads
# =============================================================================


@dataclass(slots=True)
class CommitActivityData:
    """Commits and contributors fetched for activity analysis."""

    commits: List[CommitRecord]
    contributors: List[ContributorRecord]
    start: datetime
    end: datetime


@dataclass(slots=True)
class BranchPRData:
    """Branches, pull requests and reviews fetched together."""

    repository: RepositoryInfo
    branches: List[BranchRecord]
    pull_requests: List[PullRequestRecord]
    reviews: List[ReviewRecord]


# =============================================================================
# Aggregation Results
# =============================================================================


@dataclass(slots=True)
class DayBucket:
    """Commits that fell on one day of the week."""

    day_of_week: int  # 0 = Sunday .. 6 = Saturday
    day_name: str
    count: int = 0
    contributors: Set[ContributorIdentity] = field(default_factory=set)


@dataclass(slots=True)
class DailyCell:
    """Commits on a single calendar day (UTC)."""

    date: str
    day_of_week: int
    count: int = 0
    contributors: Set[ContributorIdentity] = field(default_factory=set)


@dataclass(slots=True)
class PeakDay:
    day: str
    count: int


@dataclass(slots=True)
class HeatmapResult:
    """Day-of-week commit heatmap."""

    buckets: List[DayBucket]
    days: List[DailyCell]
    total_commits: int
    peak_day: PeakDay
    average_per_day: float

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the heatmap for JSON output."""
        return {
            "total_commits": self.total_commits,
            "peak_day": {"day": self.peak_day.day, "count": self.peak_day.count},
            "average_per_day": self.average_per_day,
            "buckets": [
                {
                    "day_of_week": bucket.day_of_week,
                    "day_name": bucket.day_name,
                    "count": bucket.count,
                    "contributors": sorted(str(c) for c in bucket.contributors),
                }
                for bucket in self.buckets
            ],
            "days": [
                {"date": cell.date, "day_of_week": cell.day_of_week, "count": cell.count}
                for cell in self.days
            ],
        }


@dataclass(slots=True)
class TrendPoint:
    period: str
    count: int
    direction: TrendDirection = TrendDirection.STABLE


@dataclass(slots=True)
class ContributorTrend:
    """Per-period commit counts for a single contributor."""

    identity: ContributorIdentity
    data_points: List[TrendPoint]
    total_commits: int
    last_commit_at: Optional[datetime] = None
    avatar_url: Optional[str] = None


@dataclass(slots=True)
class ContributorTrendResult:
    contributors: List[ContributorTrend]
    period: str
    granularity: Granularity
    total_contributors: int = 0
    active_contributors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "granularity": self.granularity.value,
            "total_contributors": self.total_contributors,
            "active_contributors": self.active_contributors,
            "contributors": [
                {
                    "contributor": trend.identity.value,
                    "identity_kind": trend.identity.kind.value,
                    "total_commits": trend.total_commits,
                    "data_points": [
                        {"period": p.period, "count": p.count, "trend": p.direction.value}
                        for p in trend.data_points
                    ],
                }
                for trend in self.contributors
            ],
        }


@dataclass(slots=True)
class PeriodBucket:
    period: str
    count: int
    contributors: List[str]


@dataclass(slots=True)
class CommitCountPoint:
    date: str
    count: int


@dataclass(slots=True)
class TimelineEntry:
    date: str
    opened: int = 0
    merged: int = 0
    closed: int = 0


@dataclass(slots=True)
class TimelineResult:
    entries: List[TimelineEntry]

    @property
    def total_opened(self) -> int:
        return sum(entry.opened for entry in self.entries)

    @property
    def total_merged(self) -> int:
        return sum(entry.merged for entry in self.entries)

    @property
    def total_closed(self) -> int:
        return sum(entry.closed for entry in self.entries)


@dataclass(slots=True)
class FileTrendPoint:
    date: str
    changes: int


@dataclass(slots=True)
class FileChangeData:
    """Change statistics for a single file."""

    filename: str
    change_count: int
    percentage: float
    last_changed: datetime
    file_type: str
    is_deleted: bool
    trend_data: List[FileTrendPoint] = field(default_factory=list)


@dataclass(slots=True)
class FileTypeData:
    category: str
    change_count: int
    percentage: float
    color: str


@dataclass(slots=True)
class FileChangeAnalysis:
    files: List[FileChangeData]
    total_changes: int
    analysis_date: datetime
    period: str
    file_type_breakdown: List[FileTypeData] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "analysis_date": self.analysis_date.isoformat(),
            "total_changes": self.total_changes,
            "files": [
                {
                    "filename": f.filename,
                    "change_count": f.change_count,
                    "percentage": f.percentage,
                    "last_changed": f.last_changed.isoformat(),
                    "file_type": f.file_type,
                    "is_deleted": f.is_deleted,
                    "trend_data": [{"date": p.date, "changes": p.changes} for p in f.trend_data],
                }
                for f in self.files
            ],
            "file_type_breakdown": [
                {
                    "category": t.category,
                    "change_count": t.change_count,
                    "percentage": t.percentage,
                    "color": t.color,
                }
                for t in self.file_type_breakdown
            ],
        }


@dataclass(slots=True)
class FileChangePatterns:
    hotspots: List[FileChangeData]
    recently_active: List[FileChangeData]
    stale_files: List[FileChangeData]
    deleted_files: List[FileChangeData]
    hotspot_threshold: float = 0.0


@dataclass(slots=True)
class ActivityPattern:
    """Shape of an activity series."""

    trend: LinearTrend
    consistency_score: int
    average: float
    peak: int


@dataclass(slots=True)
class BranchData:
    branch: BranchRecord
    status: BranchStatus
    health_score: int


@dataclass(slots=True)
class BranchAnalytics:
    total_branches: int
    active_branches: int
    merged_branches: int
    stale_branches: int
    branches: List[BranchData]


@dataclass(slots=True)
class ContributorPRStats:
    username: str
    pr_count: int = 0
    lines_changed: int = 0
    average_time_to_merge: float = 0.0


@dataclass(slots=True)
class PRAnalytics:
    total_prs: int
    open_prs: int
    closed_prs: int
    merged_prs: int
    average_time_to_merge: int
    average_pr_size: int
    timeline: TimelineResult
    top_contributors: List[ContributorPRStats]


@dataclass(slots=True)
class PRPatterns:
    average_prs_per_week: float
    peak_activity: PeakDay
    size_distribution: Dict[str, int]
    merge_rate: float


@dataclass(slots=True)
class ReviewerStats:
    username: str
    review_count: int
    approval_rate: float
    change_request_rate: float


@dataclass(slots=True)
class ReviewPattern:
    date: str
    reviews_given: int = 0
    approvals_given: int = 0
    change_requests_given: int = 0


@dataclass(slots=True)
class ReviewAnalytics:
    total_reviews: int
    average_reviews_per_pr: float
    average_time_to_first_review: float
    average_time_to_approval: float
    top_reviewers: List[ReviewerStats]
    review_patterns: List[ReviewPattern]


@dataclass(slots=True)
class BranchPRAnalysis:
    branches: BranchAnalytics
    pull_requests: PRAnalytics
    reviews: ReviewAnalytics
    analysis_date: datetime
    period: str
