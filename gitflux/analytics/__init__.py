"""Pure aggregations over fetched repository records."""

from .branches import (
    branch_health_score,
    branch_status,
    calculate_branch_analytics,
    generate_branch_pr_analysis,
    merged_head_refs,
)
from .contributors import (
    aggregate_commits_by_period,
    compute_contributor_trends,
    transform_commit_activity,
)
from .file_changes import (
    analyze_file_change_patterns,
    compute_file_change_analysis,
    generate_file_trend_data,
)
from .heatmap import compute_heatmap
from .patterns import analyze_activity_pattern, consistency_score, least_squares_slope, linear_trend
from .pull_requests import (
    analyze_pr_patterns,
    calculate_pr_analytics,
    categorize_pr_size,
    compute_timeline,
)
from .reviews import calculate_review_analytics

__all__ = [
    "aggregate_commits_by_period",
    "analyze_activity_pattern",
    "analyze_file_change_patterns",
    "analyze_pr_patterns",
    "branch_health_score",
    "branch_status",
    "calculate_branch_analytics",
    "calculate_pr_analytics",
    "calculate_review_analytics",
    "categorize_pr_size",
    "compute_contributor_trends",
    "compute_file_change_analysis",
    "compute_heatmap",
    "compute_timeline",
    "consistency_score",
    "generate_branch_pr_analysis",
    "generate_file_trend_data",
    "least_squares_slope",
    "linear_trend",
    "merged_head_refs",
    "transform_commit_activity",
]
