"""Repository analytics facade tying fetching, caching and aggregation together."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar, Union

import requests

from .analytics import (
    compute_contributor_trends,
    compute_file_change_analysis,
    compute_heatmap,
    compute_timeline,
    generate_branch_pr_analysis,
)
from .api_client import GitHubApiClient
from .cache import VolatileCache
from .config import Config
from .constants import CACHE_CONFIG
from .errors import ApiResult
from .fetcher import FetchOptions, PaginatedFetcher, cache_prefix
from .models import (
    BranchPRAnalysis,
    CommitActivityData,
    CommitCountPoint,
    CommitRecord,
    CommitWithFiles,
    ContributorTrendResult,
    FileChangeAnalysis,
    HeatmapResult,
    PullRequestRecord,
    TimelineResult,
)
from .periods import TimePeriod, parse_period

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _record_id(record: Any) -> str:
    if isinstance(record, CommitWithFiles):
        return record.commit.id
    return str(getattr(record, "id", ""))


def transformation_key(operation: str, records: Sequence[Any], period: str = "") -> str:
    """Cache key for an aggregation over ``records``.

    Combines the operation, period, record count and the ids of the first
    few records. Only suited to records that do not change once fetched.
    """
    sample = CACHE_CONFIG['transform_key_sample']
    ids = ",".join(_record_id(record) for record in records[:sample])
    return f"{operation}:{period}:{len(records)}:{ids}"


@dataclass
class RepositoryAnalytics:
    """Facade over the API client, both caches and the aggregations.

    The fetch cache holds raw fetch results keyed by repository, query and
    period. The transformation cache holds aggregation results keyed by the
    records they were computed from. The two expire independently.
    """

    config: Config
    session: Optional[requests.Session] = None

    def __post_init__(self) -> None:
        self.api_client = GitHubApiClient(self.config, self.session)
        self.fetch_cache = VolatileCache(
            ttl_seconds=self.config.cache.fetch_ttl_seconds,
            max_entries=self.config.cache.fetch_max_entries,
            name="fetch",
        )
        self.transform_cache = VolatileCache(
            ttl_seconds=self.config.cache.transform_ttl_seconds,
            max_entries=self.config.cache.transform_max_entries,
            name="transform",
        )
        self.fetcher = PaginatedFetcher(self.api_client, self.fetch_cache, self.config)

    def close(self) -> None:
        self.api_client.close()

    def __enter__(self) -> "RepositoryAnalytics":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Aggregations
    # ------------------------------------------------------------------

    def _transform(
        self,
        operation: str,
        records: Optional[Iterable[Any]],
        period: str,
        compute: Callable[[List[Any]], T],
    ) -> T:
        items = list(records or [])
        if not items:
            return compute(items)

        key = transformation_key(operation, items, period)
        marker = object()
        cached = self.transform_cache.get(key, marker)
        if cached is not marker:
            logger.debug(f"Transformation cache hit for {operation}")
            return copy.deepcopy(cached)

        result = compute(items)
        # cached results are never shared with callers
        self.transform_cache.set(key, copy.deepcopy(result))
        return result

    def compute_heatmap(
        self,
        records: Optional[Iterable[CommitRecord]],
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    ) -> HeatmapResult:
        resolved = parse_period(period)
        return self._transform("heatmap", records, resolved.value, lambda items: compute_heatmap(items, resolved))

    def compute_contributor_trends(
        self,
        records: Optional[Iterable[CommitRecord]],
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    ) -> ContributorTrendResult:
        resolved = parse_period(period)
        return self._transform(
            "trends", records, resolved.value, lambda items: compute_contributor_trends(items, resolved)
        )

    def compute_timeline(self, pull_requests: Optional[Iterable[PullRequestRecord]]) -> TimelineResult:
        """Pull request timeline, always recomputed.

        A pull request keeps its number while its state changes, so timelines
        are not served from the transformation cache.
        """
        return compute_timeline(pull_requests)

    def compute_file_change_analysis(
        self,
        commits: Optional[Iterable[CommitWithFiles]],
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
    ) -> FileChangeAnalysis:
        resolved = parse_period(period)
        return self._transform(
            "file-changes", commits, resolved.value, lambda items: compute_file_change_analysis(items, resolved)
        )

    # ------------------------------------------------------------------
    # Fetches
    # ------------------------------------------------------------------

    def fetch_options(self, **overrides: Any) -> FetchOptions:
        """Fetch options from configuration, with per-call overrides."""
        return self.fetcher.options(**overrides)

    def fetch_analytics_data(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[CommitActivityData]:
        """Orchestrated commit activity fetch for one repository and period."""
        logger.info(f"Fetching commit activity for {owner}/{repo} ({parse_period(period).value})")
        return self.fetcher.fetch_commit_activity(owner, repo, period, options)

    def fetch_contributor_commits(
        self,
        owner: str,
        repo: str,
        contributor: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[List[CommitRecord]]:
        return self.fetcher.fetch_contributor_commits(owner, repo, contributor, period, options)

    def fetch_weekly_activity(
        self,
        owner: str,
        repo: str,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[List[CommitCountPoint]]:
        return self.fetcher.fetch_weekly_activity(owner, repo, options)

    def fetch_file_change_analysis(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[FileChangeAnalysis]:
        """Fetch commits with their files and analyse file churn."""
        result = self.fetcher.fetch_commits_with_files(owner, repo, period, options)
        if not result.ok:
            return ApiResult(error=result.error, rate_limit=result.rate_limit)
        return ApiResult(
            data=self.compute_file_change_analysis(result.data, period),
            rate_limit=result.rate_limit,
            rate_limit_warning=result.rate_limit_warning,
            from_cache=result.from_cache,
        )

    def fetch_branch_pr_analysis(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
        now: Optional[datetime] = None,
    ) -> ApiResult[BranchPRAnalysis]:
        """Fetch branches, pull requests and reviews and analyse them."""
        result = self.fetcher.fetch_branch_pr_data(owner, repo, period, options)
        if not result.ok:
            return ApiResult(error=result.error, rate_limit=result.rate_limit)
        return ApiResult(
            data=generate_branch_pr_analysis(result.data, period, now=now),
            rate_limit=result.rate_limit,
            rate_limit_warning=result.rate_limit_warning,
            from_cache=result.from_cache,
        )

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def invalidate_cache(self, owner: Optional[str] = None, repo: Optional[str] = None) -> int:
        """Drop cached data for a repository, an owner, or everything.

        Repository-scoped invalidation only touches the fetch cache, whose
        keys carry the repository. Clearing everything empties both caches.

        Returns:
            Number of entries removed
        """
        removed = self.fetch_cache.invalidate(cache_prefix(owner, repo))
        if not owner:
            removed += self.transform_cache.invalidate()
        return removed

    def cache_stats(self) -> Dict[str, Dict[str, int]]:
        return {
            "fetch": self.fetch_cache.stats().to_dict(),
            "transform": self.transform_cache.stats().to_dict(),
        }
