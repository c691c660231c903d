"""Command line interface for gitflux."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

import typer
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from ..analytics import analyze_file_change_patterns
from ..cancellation import CancellationToken
from ..config import Config
from ..console import Console
from ..errors import ApiResult
from ..exceptions import ApiError, GitFluxError
from ..fetcher import FetchOptions
from ..parsers import split_repository
from ..periods import parse_period
from ..service import RepositoryAnalytics
from .display import (
    render_branch_pr_analysis,
    render_config,
    render_contributor_trends,
    render_file_changes,
    render_heatmap,
    render_rate_limit,
)

logger = logging.getLogger(__name__)

app = typer.Typer(help="Analyze GitHub repository activity.")
config_app = typer.Typer(help="Manage configuration settings")
app.add_typer(config_app, name="config")

console = Console()

T = TypeVar("T")

PERIOD_HELP = "Analysis period: 30d, 90d (or 3m), 6m, 1y, all"


def _load_config() -> Config:
    try:
        return Config.load()
    except ValueError as exc:
        console.print_error(exc, "Configuration error:")
        raise typer.Exit(code=1) from exc


def _resolve_target(repository: str, period: Optional[str], config: Config):
    try:
        owner, repo = split_repository(repository)
        resolved = parse_period(period or config.defaults.period)
    except GitFluxError as exc:
        console.print_error(exc, "Validation error:")
        raise typer.Exit(code=1) from exc
    return owner, repo, resolved


def _run_cancellable(
    label: str,
    fetch: Callable[[FetchOptions], ApiResult[T]],
    analytics: RepositoryAnalytics,
    **overrides,
) -> ApiResult[T]:
    """Run a fetch on a worker thread; Ctrl+C cancels it cooperatively."""
    token = CancellationToken()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
        disable=console.is_quiet(),
    ) as progress:
        task_id = progress.add_task(f"[accent]{label}", total=None)

        def on_progress(done: int, estimate: int) -> None:
            progress.update(task_id, completed=done, total=max(estimate, done))

        options = analytics.fetch_options(on_progress=on_progress, cancel_token=token, **overrides)
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(fetch, options)
            try:
                return future.result()
            except KeyboardInterrupt:
                token.cancel()
                console.print_warning("Cancelling...")
                return future.result()


def _unwrap(result: ApiResult[T], context: str) -> T:
    try:
        data = result.unwrap(context)
    except ApiError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc
    render_rate_limit(console, result.rate_limit, result.rate_limit_warning)
    if result.from_cache:
        console.log("[muted]Served from cache[/]")
    return data


# ============================================================================
# Analysis Commands
# ============================================================================

@app.command()
def analyze(
    repository: str = typer.Argument(..., help="Repository as owner/name or a github.com URL"),
    period: Optional[str] = typer.Option(None, "--period", "-p", help=PERIOD_HELP),
    max_records: Optional[int] = typer.Option(None, "--max-records", help="Maximum commits to fetch"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
) -> None:
    """Show the commit heatmap and contributor trends of a repository."""
    config = _load_config()
    owner, repo, resolved = _resolve_target(repository, period, config)
    overrides = {"max_records": max_records} if max_records else {}

    with RepositoryAnalytics(config) as analytics:
        result = _run_cancellable(
            f"Fetching commits for {owner}/{repo}",
            lambda options: analytics.fetch_analytics_data(owner, repo, resolved, options),
            analytics,
            **overrides,
        )
        data = _unwrap(result, "fetching commit activity")
        heatmap = analytics.compute_heatmap(data.commits, resolved)
        trends = analytics.compute_contributor_trends(data.commits, resolved)

    if as_json:
        console.print_json(data={"heatmap": heatmap.to_dict(), "contributors": trends.to_dict()})
        return

    console.rule(f"[repo]{owner}/{repo}[/] [muted]{resolved.value}[/]")
    render_heatmap(console, heatmap)
    render_contributor_trends(console, trends)


@app.command()
def files(
    repository: str = typer.Argument(..., help="Repository as owner/name or a github.com URL"),
    period: Optional[str] = typer.Option(None, "--period", "-p", help=PERIOD_HELP),
    max_records: Optional[int] = typer.Option(None, "--max-records", help="Maximum commits to inspect"),
    limit: int = typer.Option(15, "--limit", "-l", help="Number of files to list"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
) -> None:
    """Show the most frequently changed files and file type breakdown."""
    config = _load_config()
    owner, repo, resolved = _resolve_target(repository, period, config)
    overrides = {"max_records": max_records} if max_records else {}

    with RepositoryAnalytics(config) as analytics:
        result = _run_cancellable(
            f"Inspecting commits of {owner}/{repo}",
            lambda options: analytics.fetch_file_change_analysis(owner, repo, resolved, options),
            analytics,
            **overrides,
        )
        analysis = _unwrap(result, "fetching file changes")

    if as_json:
        console.print_json(data=analysis.to_dict())
        return

    render_file_changes(console, analysis, analyze_file_change_patterns(analysis.files), limit=limit)


@app.command()
def pulls(
    repository: str = typer.Argument(..., help="Repository as owner/name or a github.com URL"),
    period: Optional[str] = typer.Option(None, "--period", "-p", help=PERIOD_HELP),
) -> None:
    """Show branch, pull request and review statistics."""
    config = _load_config()
    owner, repo, resolved = _resolve_target(repository, period, config)

    with RepositoryAnalytics(config) as analytics:
        result = _run_cancellable(
            f"Fetching branches and pull requests for {owner}/{repo}",
            lambda options: analytics.fetch_branch_pr_analysis(owner, repo, resolved, options),
            analytics,
        )
        analysis = _unwrap(result, "fetching branches and pull requests")

    render_branch_pr_analysis(console, analysis)


@app.command()
def init(
    pat: str = typer.Option(
        ...,
        "--pat",
        help="GitHub Personal Access Token (requires 'repo' scope for private repos)",
        prompt="GitHub Personal Access Token",
        hide_input=True,
    ),
) -> None:
    """Store credentials securely and write the default configuration."""
    config = _load_config()
    try:
        config.update_auth(pat.strip())
    except RuntimeError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc
    config.dump()
    console.print_success("✓ Token stored in the system keyring")


# ============================================================================
# Config Commands
# ============================================================================

@config_app.command("show")
def show_config() -> None:
    """Display current configuration settings."""
    render_config(console, _load_config().to_display_dict())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. fetch.page_delay)"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a configuration value."""
    try:
        config = Config.load()
        config.set_value(key, value)
        config.dump()
        console.print(f"[success]✓ Configuration updated:[/] {key} = {value}")
    except ValueError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc


@config_app.command("get")
def config_get(
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. defaults.period)"),
) -> None:
    """Get a configuration value."""
    try:
        value = Config.load().get_value(key)
        console.print(f"{key} = {value}")
    except ValueError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc


# ============================================================================
# App Callback
# ============================================================================

@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output for debugging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output"),
) -> None:
    """CLI entry-point callback for shared initialisation."""
    console.set_verbose(verbose)
    console.set_quiet(quiet)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
