"""Rich renderers for analysis results."""

from __future__ import annotations

from typing import Any, Dict

from rich import box
from rich.table import Table

from ..console import Console
from ..errors import rate_limit_reset_in
from ..models import (
    BranchPRAnalysis,
    ContributorTrendResult,
    FileChangeAnalysis,
    FileChangePatterns,
    HeatmapResult,
    RateLimitInfo,
)

TREND_ARROWS = {"up": "[success]▲[/]", "down": "[danger]▼[/]", "stable": "[muted]●[/]"}


def _table(title: str) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        title_style="title",
        border_style="frame",
        show_header=True,
        header_style="label",
    )


def render_heatmap(console: Console, heatmap: HeatmapResult) -> None:
    if heatmap.total_commits == 0:
        console.print_warning("No commits found in this period.")
        return

    table = _table("Commits by Day of Week")
    table.add_column("Day", style="label")
    table.add_column("Commits", justify="right", style="value")
    table.add_column("Contributors", justify="right", style="muted")
    table.add_column("", style="accent")

    peak = max(heatmap.peak_day.count, 1)
    for bucket in heatmap.buckets:
        bar = "█" * max(1, round(bucket.count / peak * 20))
        table.add_row(bucket.day_name, str(bucket.count), str(len(bucket.contributors)), bar)

    console.print(table)
    console.print(
        f"[label]Total:[/] [value]{heatmap.total_commits}[/]  "
        f"[label]Peak:[/] [accent]{heatmap.peak_day.day}[/] ({heatmap.peak_day.count})  "
        f"[label]Average per day:[/] [value]{heatmap.average_per_day:.1f}[/]"
    )


def render_contributor_trends(console: Console, trends: ContributorTrendResult, limit: int = 10) -> None:
    if not trends.contributors:
        console.print_warning("No contributor activity found.")
        return

    table = _table(f"Contributor Trends ({trends.period}, per {trends.granularity.value})")
    table.add_column("Contributor", style="repo", no_wrap=True)
    table.add_column("Commits", justify="right", style="value")
    table.add_column("Periods", justify="right", style="muted")
    table.add_column("Latest", style="value")

    for trend in trends.contributors[:limit]:
        latest = trend.data_points[-1]
        table.add_row(
            trend.identity.value,
            str(trend.total_commits),
            str(len(trend.data_points)),
            f"{TREND_ARROWS[latest.direction.value]} {latest.period}: {latest.count}",
        )

    console.print(table)
    console.print(
        f"[label]Contributors:[/] [value]{trends.total_contributors}[/]  "
        f"[label]Active (30 days):[/] [success]{trends.active_contributors}[/]"
    )


def render_file_changes(
    console: Console,
    analysis: FileChangeAnalysis,
    patterns: FileChangePatterns,
    limit: int = 15,
) -> None:
    if not analysis.files:
        console.print_warning("No file changes found in this period.")
        return

    hotspots = {data.filename for data in patterns.hotspots}
    table = _table(f"Most Changed Files ({analysis.period})")
    table.add_column("File", style="value")
    table.add_column("Changes", justify="right", style="value")
    table.add_column("Share", justify="right", style="muted")
    table.add_column("Type", style="label")
    table.add_column("Last changed", style="muted")

    for data in analysis.files[:limit]:
        name = data.filename
        if data.is_deleted:
            name = f"[muted][strike]{name}[/strike][/]"
        elif data.filename in hotspots:
            name = f"[danger]{name}[/]"
        table.add_row(
            name,
            str(data.change_count),
            f"{data.percentage:.1f}%",
            data.file_type,
            data.last_changed.date().isoformat(),
        )
    console.print(table)

    breakdown = _table("File Types")
    breakdown.add_column("Category", style="label")
    breakdown.add_column("Changes", justify="right", style="value")
    breakdown.add_column("Share", justify="right", style="muted")
    for entry in analysis.file_type_breakdown:
        breakdown.add_row(f"[{entry.color}]■[/] {entry.category}", str(entry.change_count), f"{entry.percentage:.1f}%")
    console.print(breakdown)

    console.print(
        f"[label]Hotspots:[/] [danger]{len(patterns.hotspots)}[/]  "
        f"[label]Recently active:[/] [success]{len(patterns.recently_active)}[/]  "
        f"[label]Stale:[/] [muted]{len(patterns.stale_files)}[/]  "
        f"[label]Deleted:[/] [muted]{len(patterns.deleted_files)}[/]"
    )


def render_branch_pr_analysis(console: Console, analysis: BranchPRAnalysis) -> None:
    prs = analysis.pull_requests
    summary = _table(f"Pull Requests ({analysis.period})")
    summary.add_column("Metric", style="label")
    summary.add_column("Value", justify="right", style="value")
    summary.add_row("Total", str(prs.total_prs))
    summary.add_row("Open", str(prs.open_prs))
    summary.add_row("Merged", str(prs.merged_prs))
    summary.add_row("Closed without merge", str(prs.closed_prs))
    summary.add_row("Avg. time to merge", f"{prs.average_time_to_merge} h")
    summary.add_row("Avg. size", f"{prs.average_pr_size} lines")
    summary.add_row("Reviews", str(analysis.reviews.total_reviews))
    summary.add_row("Avg. time to first review", f"{analysis.reviews.average_time_to_first_review} h")
    console.print(summary)

    if prs.top_contributors:
        authors = _table("Top Authors")
        authors.add_column("Author", style="repo")
        authors.add_column("PRs", justify="right", style="value")
        authors.add_column("Lines", justify="right", style="muted")
        for stats in prs.top_contributors:
            authors.add_row(stats.username, str(stats.pr_count), str(stats.lines_changed))
        console.print(authors)

    branches = analysis.branches
    console.print(
        f"[label]Branches:[/] [value]{branches.total_branches}[/]  "
        f"[label]Active:[/] [success]{branches.active_branches}[/]  "
        f"[label]Merged:[/] [accent]{branches.merged_branches}[/]  "
        f"[label]Stale:[/] [muted]{branches.stale_branches}[/]"
    )
    undated = sum(1 for data in branches.branches if data.branch.last_commit_timestamp is None)
    if undated:
        console.print(
            f"[muted]{undated} branch(es) have no known commit date; "
            f"raise fetch.max_branch_details to look them up[/]"
        )


def render_rate_limit(console: Console, rate_limit: RateLimitInfo | None, warning: bool) -> None:
    if warning:
        console.print_warning(
            "Stopped early to stay under the GitHub rate limit; results are partial. "
            f"Limit resets in {rate_limit_reset_in(rate_limit)}."
        )
    if rate_limit is not None:
        console.log(f"[muted]Rate limit: {rate_limit.remaining}/{rate_limit.limit}[/]")


def render_config(console: Console, data: Dict[str, Any]) -> None:
    table = Table(
        title="gitflux Configuration",
        box=box.ROUNDED,
        title_style="title",
        border_style="frame",
        expand=True,
        show_lines=True,
    )
    table.add_column("Section", style="label", no_wrap=True)
    table.add_column("Values", style="value")

    for section, values in data.items():
        if isinstance(values, dict):
            rendered = "\n".join(f"[label]{k}[/]: [value]{v}[/]" for k, v in values.items())
        else:
            rendered = f"[value]{values}[/]"
        table.add_row(f"[accent]{section}[/]", rendered)

    console.print(table)
