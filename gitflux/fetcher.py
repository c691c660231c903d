"""Bounded, cancellable, rate-limit aware pagination over the GitHub API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Union

from .analytics.contributors import transform_commit_activity
from .api_client import GitHubApiClient
from .api_params import build_commits_params, build_list_params
from .cache import VolatileCache
from .cancellation import CancellationToken, is_cancelled, pause
from .config import Config
from .constants import FETCH_DEFAULTS
from .errors import ApiResult, ErrorKind
from .models import (
    BranchPRData,
    BranchRecord,
    CommitActivityData,
    CommitCountPoint,
    CommitRecord,
    CommitWithFiles,
    RateLimitInfo,
    ReviewRecord,
)
from .parsers import (
    parse_branch,
    parse_commit,
    parse_commit_with_files,
    parse_contributor,
    parse_pull_request,
    parse_repository,
    parse_review,
)
from .periods import TimePeriod, get_time_period_bounds, parse_period, utc_now
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
PageRequest = Callable[[Dict[str, Any], Optional[CancellationToken]], ApiResult[List[Dict[str, Any]]]]


@dataclass(slots=True)
class FetchOptions:
    """Bounds and hooks for one orchestrated fetch."""

    max_records: int = FETCH_DEFAULTS['max_records']
    rate_limit_threshold: int = FETCH_DEFAULTS['rate_limit_threshold']
    page_delay: float = FETCH_DEFAULTS['page_delay']
    per_page: int = 100
    on_progress: Optional[ProgressCallback] = None
    cancel_token: Optional[CancellationToken] = None
    use_cache: bool = True
    max_retries: int = 3
    retry_base_delay: float = 1.0

    @classmethod
    def from_config(cls, config: Config, **overrides: Any) -> "FetchOptions":
        """Build options from the ``fetch`` and ``api`` config sections."""
        options = cls(
            max_records=config.fetch.max_records,
            rate_limit_threshold=config.fetch.rate_limit_threshold,
            page_delay=config.fetch.page_delay,
            per_page=config.fetch.per_page,
            max_retries=config.api.max_retries,
            retry_base_delay=config.api.retry_base_delay,
        )
        return replace(options, **overrides) if overrides else options

    def report(self, so_far: int, estimate: int) -> None:
        if self.on_progress is not None:
            self.on_progress(so_far, estimate)


def _latest(current: Optional[RateLimitInfo], new: Optional[RateLimitInfo]) -> Optional[RateLimitInfo]:
    return new if new is not None else current


class PaginatedFetcher:
    """Drives paginated fetches and caches their outcome.

    Pages are requested one at a time in increasing order. A fetch stops at
    the first short or empty page, at ``max_records`` (truncating exactly),
    or as soon as the remaining rate limit drops below the threshold, in
    which case the records gathered so far are returned with
    ``rate_limit_warning`` set.
    """

    def __init__(
        self,
        client: GitHubApiClient,
        cache: VolatileCache,
        config: Optional[Config] = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.config = config or client.config

    def options(self, **overrides: Any) -> FetchOptions:
        return FetchOptions.from_config(self.config, **overrides)

    # ------------------------------------------------------------------
    # Core loop
    # ------------------------------------------------------------------

    def _attempt(self, operation, options: FetchOptions, description: str):
        return retry_with_backoff(
            operation,
            max_retries=options.max_retries,
            base_delay=options.retry_base_delay,
            cancel_token=options.cancel_token,
            description=description,
        )

    def paginate(
        self,
        request_page: PageRequest,
        params: Optional[Dict[str, Any]],
        options: FetchOptions,
        description: str = "records",
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Collect list items page by page.

        Args:
            request_page: Callable performing one page request given the
                query parameters and the cancellation token
            params: Query parameters shared by every page
            options: Fetch bounds, progress callback and cancellation token
            description: Used in log messages

        Returns:
            ApiResult with the raw items, or the first terminal failure
        """
        if options.max_records <= 0:
            raise ValueError(f"max_records must be positive, got {options.max_records}")
        if options.per_page <= 0:
            raise ValueError(f"per_page must be positive, got {options.per_page}")

        token = options.cancel_token
        records: List[Dict[str, Any]] = []
        rate_limit: Optional[RateLimitInfo] = None
        page = 1

        while True:
            if is_cancelled(token):
                return ApiResult.cancelled()

            page_params = dict(params or {}, page=page, per_page=options.per_page)
            result = self._attempt(
                lambda: request_page(page_params, token),
                options,
                f"{description} page {page}",
            )
            rate_limit = _latest(rate_limit, result.rate_limit)
            if not result.ok:
                return ApiResult(error=result.error, rate_limit=rate_limit)

            items = result.data or []
            records.extend(items)

            reached_limit = len(records) >= options.max_records
            if reached_limit:
                del records[options.max_records:]
            last_page = len(items) < options.per_page

            if last_page or reached_limit:
                estimate = len(records)
            else:
                estimate = min(options.max_records, len(records) + options.per_page)
            options.report(len(records), estimate)

            if last_page or reached_limit:
                logger.debug(f"Fetched {len(records)} {description} in {page} page(s)")
                return ApiResult(data=records, rate_limit=rate_limit)

            if rate_limit is not None and rate_limit.remaining < options.rate_limit_threshold:
                logger.warning(
                    f"Stopping {description} fetch early: {rate_limit.remaining} requests left "
                    f"(threshold {options.rate_limit_threshold}), returning {len(records)} records"
                )
                return ApiResult(data=records, rate_limit=rate_limit, rate_limit_warning=True)

            if pause(options.page_delay, token):
                return ApiResult.cancelled()
            page += 1

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(owner: str, repo: str, query: str, period: Union[str, TimePeriod]) -> str:
        """Composite key ``owner/repo:query:period``."""
        return f"{owner}/{repo}:{query}:{parse_period(period).value}"

    def _cached(self, key: str, options: FetchOptions) -> Optional[ApiResult[Any]]:
        if not options.use_cache:
            return None
        marker = object()
        value = self.cache.get(key, marker)
        if value is marker:
            return None
        logger.info(f"Cache hit for {key}")
        return ApiResult(data=value, from_cache=True)

    def _store(self, key: str, result: ApiResult[Any], options: FetchOptions) -> None:
        if options.use_cache and result.ok and not result.rate_limit_warning:
            self.cache.set(key, result.data)

    # ------------------------------------------------------------------
    # Orchestrated fetches
    # ------------------------------------------------------------------

    def fetch_commit_activity(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod],
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[CommitActivityData]:
        """Fetch commits inside the period plus the repository contributors.

        A cache hit costs no requests and does not report progress. Results
        cut short by the rate-limit threshold are returned but not cached.
        """
        options = options or self.options()
        if is_cancelled(options.cancel_token):
            return ApiResult.cancelled()

        resolved = parse_period(period)
        key = self.cache_key(owner, repo, "commit-activity", resolved)
        cached = self._cached(key, options)
        if cached is not None:
            return cached

        now = utc_now()
        bounds = get_time_period_bounds(resolved, now)
        params = build_commits_params(
            since=bounds.since.isoformat() if bounds.since else None,
            until=bounds.until.isoformat() if bounds.until else None,
        )

        pages = self.paginate(
            lambda page_params, token: self.client.list_commits(owner, repo, page_params, token),
            params,
            options,
            description=f"{owner}/{repo} commits",
        )
        if not pages.ok:
            return pages

        commits = [parse_commit(item) for item in pages.data]
        rate_limit = pages.rate_limit

        contributors_result = self._attempt(
            lambda: self.client.get_contributors(
                owner, repo, {"per_page": options.per_page}, options.cancel_token
            ),
            options,
            f"{owner}/{repo} contributors",
        )
        if contributors_result.error and contributors_result.error.kind is ErrorKind.CANCELLED:
            return ApiResult.cancelled()
        rate_limit = _latest(rate_limit, contributors_result.rate_limit)
        if contributors_result.ok:
            contributors = [parse_contributor(item) for item in contributors_result.data]
        else:
            logger.warning(
                f"Could not fetch contributors for {owner}/{repo}: "
                f"{contributors_result.error.kind.value}"
            )
            contributors = []

        stamps = [commit.timestamp for commit in commits if commit.timestamp is not None]
        data = CommitActivityData(
            commits=commits,
            contributors=contributors,
            start=bounds.since or (min(stamps) if stamps else now),
            end=bounds.until or (max(stamps) if stamps else now),
        )
        result = ApiResult(data=data, rate_limit=rate_limit, rate_limit_warning=pages.rate_limit_warning)
        self._store(key, result, options)
        return result

    def fetch_contributor_commits(
        self,
        owner: str,
        repo: str,
        contributor: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[List[CommitRecord]]:
        """Commits authored by one contributor inside the period."""
        options = options or self.options(max_records=FETCH_DEFAULTS['contributor_max_records'])
        if is_cancelled(options.cancel_token):
            return ApiResult.cancelled()

        resolved = parse_period(period)
        key = self.cache_key(owner, repo, f"contributor-{contributor}", resolved)
        cached = self._cached(key, options)
        if cached is not None:
            return cached

        bounds = get_time_period_bounds(resolved)
        params = build_commits_params(
            since=bounds.since.isoformat() if bounds.since else None,
            author=contributor,
        )
        pages = self.paginate(
            lambda page_params, token: self.client.list_commits(owner, repo, page_params, token),
            params,
            options,
            description=f"{owner}/{repo} commits by {contributor}",
        )
        if not pages.ok:
            return pages

        result = ApiResult(
            data=[parse_commit(item) for item in pages.data],
            rate_limit=pages.rate_limit,
            rate_limit_warning=pages.rate_limit_warning,
        )
        self._store(key, result, options)
        return result

    def fetch_weekly_activity(
        self,
        owner: str,
        repo: str,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[List[CommitCountPoint]]:
        """Weekly commit totals for the last year from the statistics endpoint."""
        options = options or self.options()
        if is_cancelled(options.cancel_token):
            return ApiResult.cancelled()

        key = self.cache_key(owner, repo, "weekly-activity", TimePeriod.YEAR_1)
        cached = self._cached(key, options)
        if cached is not None:
            return cached

        stats = self._attempt(
            lambda: self.client.get_commit_activity(owner, repo, options.cancel_token),
            options,
            f"{owner}/{repo} weekly activity",
        )
        if not stats.ok:
            return stats

        result = ApiResult(data=transform_commit_activity(stats.data), rate_limit=stats.rate_limit)
        self._store(key, result, options)
        return result

    def fetch_commits_with_files(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod],
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[List[CommitWithFiles]]:
        """Commit list followed by one detail request per commit.

        Progress is reported once per processed commit. A detail request
        failing for any reason other than cancellation or rate limiting is
        logged and that commit is skipped.
        """
        options = options or self.options()
        token = options.cancel_token
        if is_cancelled(token):
            return ApiResult.cancelled()

        resolved = parse_period(period)
        key = self.cache_key(owner, repo, "commit-files", resolved)
        cached = self._cached(key, options)
        if cached is not None:
            return cached

        bounds = get_time_period_bounds(resolved)
        params = build_commits_params(since=bounds.since.isoformat() if bounds.since else None)
        listing = self.paginate(
            lambda page_params, tok: self.client.list_commits(owner, repo, page_params, tok),
            params,
            replace(options, on_progress=None),
            description=f"{owner}/{repo} commits",
        )
        if not listing.ok:
            return listing

        rate_limit = listing.rate_limit
        rate_limit_warning = listing.rate_limit_warning
        shas = [item.get("sha") for item in listing.data if item.get("sha")]
        details: List[CommitWithFiles] = []

        for index, sha in enumerate(shas):
            if is_cancelled(token):
                return ApiResult.cancelled()

            detail = self._attempt(
                lambda: self.client.get_commit(owner, repo, sha, token),
                options,
                f"commit {sha[:7]}",
            )
            rate_limit = _latest(rate_limit, detail.rate_limit)
            if not detail.ok:
                if detail.error.kind in (ErrorKind.CANCELLED, ErrorKind.RATE_LIMIT_EXCEEDED):
                    return ApiResult(error=detail.error, rate_limit=rate_limit)
                logger.warning(f"Skipping commit {sha}: {detail.error.kind.value}")
            else:
                details.append(parse_commit_with_files(detail.data))

            options.report(index + 1, len(shas))

            if rate_limit is not None and rate_limit.remaining < options.rate_limit_threshold:
                if index < len(shas) - 1:
                    logger.warning(
                        f"Stopping commit detail fetch after {index + 1}/{len(shas)} commits: "
                        f"{rate_limit.remaining} requests left"
                    )
                    rate_limit_warning = True
                break

            if index < len(shas) - 1 and pause(options.page_delay, token):
                return ApiResult.cancelled()

        result = ApiResult(data=details, rate_limit=rate_limit, rate_limit_warning=rate_limit_warning)
        self._store(key, result, options)
        return result

    def fetch_branch_pr_data(
        self,
        owner: str,
        repo: str,
        period: Union[str, TimePeriod] = TimePeriod.DAYS_30,
        options: Optional[FetchOptions] = None,
    ) -> ApiResult[BranchPRData]:
        """Repository metadata, branches, pull requests and their reviews.

        The first ``max_branch_details`` branches get their head commit date
        and drift filled in. Reviews are requested for the ``max_review_prs``
        most recently updated pull requests only.
        """
        options = options or self.options()
        token = options.cancel_token
        if is_cancelled(token):
            return ApiResult.cancelled()

        resolved = parse_period(period)
        key = self.cache_key(owner, repo, "branch-pr", resolved)
        cached = self._cached(key, options)
        if cached is not None:
            return cached

        repo_result = self._attempt(
            lambda: self.client.get_repository(owner, repo, token),
            options,
            f"{owner}/{repo} metadata",
        )
        if not repo_result.ok:
            return repo_result
        repository = parse_repository(repo_result.data)

        branch_pages = self.paginate(
            lambda page_params, tok: self.client.list_branches(owner, repo, page_params, tok),
            None,
            options,
            description=f"{owner}/{repo} branches",
        )
        if not branch_pages.ok:
            return branch_pages
        rate_limit = _latest(repo_result.rate_limit, branch_pages.rate_limit)
        rate_limit_warning = branch_pages.rate_limit_warning
        branches = [parse_branch(item, repository.default_branch) for item in branch_pages.data]

        if not rate_limit_warning:
            detailed = self._branch_details(owner, repo, branches, repository.default_branch, options)
            if not detailed.ok:
                return ApiResult(error=detailed.error, rate_limit=_latest(rate_limit, detailed.rate_limit))
            branches = detailed.data
            rate_limit = _latest(rate_limit, detailed.rate_limit)
            rate_limit_warning = detailed.rate_limit_warning

        pull_requests = []
        if not rate_limit_warning:
            pr_pages = self.paginate(
                lambda page_params, tok: self.client.list_pull_requests(owner, repo, page_params, tok),
                build_list_params(state="all", sort="updated"),
                options,
                description=f"{owner}/{repo} pull requests",
            )
            if not pr_pages.ok:
                return ApiResult(error=pr_pages.error, rate_limit=_latest(rate_limit, pr_pages.rate_limit))
            rate_limit = _latest(rate_limit, pr_pages.rate_limit)
            rate_limit_warning = pr_pages.rate_limit_warning
            pull_requests = [parse_pull_request(item) for item in pr_pages.data]

        reviews: List[ReviewRecord] = []
        for pr in pull_requests[: self.config.fetch.max_review_prs]:
            if rate_limit_warning:
                break
            if is_cancelled(token):
                return ApiResult.cancelled()
            review_result = self._attempt(
                lambda: self.client.list_pull_request_reviews(
                    owner, repo, pr.number, {"per_page": options.per_page}, token
                ),
                options,
                f"reviews for #{pr.number}",
            )
            rate_limit = _latest(rate_limit, review_result.rate_limit)
            if not review_result.ok:
                if review_result.error.kind in (ErrorKind.CANCELLED, ErrorKind.RATE_LIMIT_EXCEEDED):
                    return ApiResult(error=review_result.error, rate_limit=rate_limit)
                logger.warning(f"Skipping reviews for #{pr.number}: {review_result.error.kind.value}")
                continue
            for payload in review_result.data:
                review = parse_review(payload, pr.number)
                if review is not None:
                    reviews.append(review)
            if rate_limit is not None and rate_limit.remaining < options.rate_limit_threshold:
                logger.warning(f"Stopping review fetch early: {rate_limit.remaining} requests left")
                rate_limit_warning = True

        data = BranchPRData(
            repository=repository,
            branches=branches,
            pull_requests=pull_requests,
            reviews=reviews,
        )
        result = ApiResult(data=data, rate_limit=rate_limit, rate_limit_warning=rate_limit_warning)
        self._store(key, result, options)
        return result

    def _branch_details(
        self,
        owner: str,
        repo: str,
        branches: List[BranchRecord],
        default_branch: str,
        options: FetchOptions,
    ) -> ApiResult[List[BranchRecord]]:
        """Head commit date and drift for the first ``max_branch_details`` branches.

        The branch list endpoint only carries the head sha. Each selected
        branch costs one commit request, plus one comparison against the
        default branch unless it is the default branch. A request failing for
        any reason other than cancellation or rate limiting leaves the branch
        as listed.
        """
        token = options.cancel_token
        rate_limit: Optional[RateLimitInfo] = None
        detailed = list(branches)
        selected = [
            index for index, branch in enumerate(detailed) if branch.last_commit_sha
        ][: self.config.fetch.max_branch_details]

        for position, index in enumerate(selected):
            if is_cancelled(token):
                return ApiResult.cancelled()
            branch = detailed[index]

            if branch.last_commit_timestamp is None:
                head = self._attempt(
                    lambda: self.client.get_commit(owner, repo, branch.last_commit_sha, token),
                    options,
                    f"head commit of {branch.name}",
                )
                rate_limit = _latest(rate_limit, head.rate_limit)
                if head.ok:
                    commit = parse_commit(head.data)
                    branch = replace(
                        branch,
                        last_commit_timestamp=commit.timestamp,
                        last_commit_author=commit.author_display_name,
                        last_commit_message=commit.message,
                    )
                elif head.error.kind in (ErrorKind.CANCELLED, ErrorKind.RATE_LIMIT_EXCEEDED):
                    return ApiResult(error=head.error, rate_limit=rate_limit)
                else:
                    logger.warning(f"Skipping head commit of {branch.name}: {head.error.kind.value}")

            if not branch.is_default:
                comparison = self._attempt(
                    lambda: self.client.compare_branches(owner, repo, default_branch, branch.name, token),
                    options,
                    f"comparison of {branch.name}",
                )
                rate_limit = _latest(rate_limit, comparison.rate_limit)
                if comparison.ok:
                    branch = replace(
                        branch,
                        ahead=int(comparison.data.get("ahead_by") or 0),
                        behind=int(comparison.data.get("behind_by") or 0),
                    )
                elif comparison.error.kind in (ErrorKind.CANCELLED, ErrorKind.RATE_LIMIT_EXCEEDED):
                    return ApiResult(error=comparison.error, rate_limit=rate_limit)
                else:
                    logger.warning(f"Skipping comparison of {branch.name}: {comparison.error.kind.value}")

            detailed[index] = branch

            if rate_limit is not None and rate_limit.remaining < options.rate_limit_threshold:
                if position < len(selected) - 1:
                    logger.warning(f"Stopping branch detail fetch early: {rate_limit.remaining} requests left")
                    return ApiResult(data=detailed, rate_limit=rate_limit, rate_limit_warning=True)
                break

        return ApiResult(data=detailed, rate_limit=rate_limit)

    def invalidate(self, owner: Optional[str] = None, repo: Optional[str] = None) -> int:
        """Drop cached fetches for a repository, an owner, or everything."""
        return self.cache.invalidate(cache_prefix(owner, repo))


def cache_prefix(owner: Optional[str] = None, repo: Optional[str] = None) -> Optional[str]:
    """Key prefix shared by every cache entry of ``owner/repo``."""
    if owner and repo:
        return f"{owner}/{repo}:"
    if owner:
        return f"{owner}/"
    return None
