"""Thin GitHub REST client returning classified results."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from .cancellation import CancellationToken, is_cancelled
from .config import Config
from .errors import ApiResult, ErrorKind, classify_exception, classify_response, extract_rate_limit

logger = logging.getLogger(__name__)


class GitHubApiClient:
    """Repository pattern wrapper around the GitHub REST API.

    Each call makes exactly one HTTP attempt and reports the outcome as an
    :class:`ApiResult`. Retrying is left to the caller, so a rate-limit or
    server error is returned as-is together with the rate limit metadata.
    """

    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitHub API client.

        Args:
            config: Configuration object with server URL and timeouts
            session: Optional requests session for connection pooling
        """
        self.config = config
        self.session = session
        self._headers: Dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "User-Agent": config.api.user_agent,
        }

        pat = self.config.get_pat()
        if pat:
            self._headers["Authorization"] = f"Bearer {pat}"
        else:
            logger.debug("No GitHub token configured; using unauthenticated requests")

    def _get_session(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        self.session.headers.update(self._headers)
        return self.session

    def _build_api_url(self, path: str) -> str:
        """Build full API URL from path.

        Raises:
            ValueError: If path is empty
        """
        if not path or not path.strip():
            raise ValueError("API path cannot be empty")

        base = self.config.server.api_url.rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
        validator: Optional[Callable[[Any], bool]] = None,
    ) -> ApiResult[Any]:
        """Perform a single GET request.

        Args:
            path: API endpoint path
            params: Optional query parameters
            cancel_token: Checked before sending and again once the response
                arrives; a cancel observed at either point wins
            validator: Optional check of the decoded payload's shape

        Returns:
            ApiResult with the decoded JSON payload or a classified failure
        """
        if is_cancelled(cancel_token):
            return ApiResult.cancelled()

        logger.debug(f"GET {path} params={params}")
        try:
            response = self._get_session().get(
                self._build_api_url(path),
                params=params,
                timeout=self.config.api.timeout,
            )
        except requests.RequestException as exc:
            if is_cancelled(cancel_token):
                return ApiResult.cancelled()
            failure = classify_exception(exc)
            logger.warning(f"Transport failure for {path}: {exc}")
            return ApiResult(error=failure)

        if is_cancelled(cancel_token):
            return ApiResult.cancelled()

        rate_limit = extract_rate_limit(response.headers)
        failure = classify_response(response)
        if failure is not None:
            if failure.kind is ErrorKind.RATE_LIMIT_EXCEEDED:
                logger.warning(
                    f"Rate limited on {path} "
                    f"(remaining={rate_limit.remaining if rate_limit else 'unknown'})"
                )
            else:
                logger.debug(f"{path} failed with {failure.kind.value} ({failure.detail})")
            return ApiResult(error=failure, rate_limit=rate_limit)

        try:
            payload = response.json()
        except (ValueError, json.JSONDecodeError) as exc:
            logger.error(
                f"Failed to decode JSON from {path}. "
                f"Status: {response.status_code}, "
                f"Content-Type: {response.headers.get('content-type', 'unknown')}"
            )
            return ApiResult.failure(
                ErrorKind.UNEXPECTED,
                rate_limit=rate_limit,
                status_code=response.status_code,
                detail=f"Invalid JSON response: {exc}",
            )

        if validator is not None and not validator(payload):
            return ApiResult.failure(
                ErrorKind.UNEXPECTED,
                rate_limit=rate_limit,
                status_code=response.status_code,
                detail=f"Unexpected {type(payload).__name__} payload from {path}",
            )

        return ApiResult(data=payload, rate_limit=rate_limit)

    def request_list(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Request an endpoint that answers with a JSON array."""
        return self.request(path, params, cancel_token, validator=lambda p: isinstance(p, list))

    def request_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ApiResult[Dict[str, Any]]:
        """Request an endpoint that answers with a JSON object."""
        return self.request(path, params, cancel_token, validator=lambda p: isinstance(p, dict))

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def get_repository(self, owner: str, repo: str, cancel_token=None) -> ApiResult[Dict[str, Any]]:
        return self.request_json(f"/repos/{owner}/{repo}", cancel_token=cancel_token)

    def get_contributors(
        self, owner: str, repo: str, params=None, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        return self.request_list(f"/repos/{owner}/{repo}/contributors", params, cancel_token)

    def list_commits(
        self, owner: str, repo: str, params=None, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        """List commits; accepts ``since``, ``until``, ``author`` and paging params."""
        return self.request_list(f"/repos/{owner}/{repo}/commits", params, cancel_token)

    def get_commit(self, owner: str, repo: str, sha: str, cancel_token=None) -> ApiResult[Dict[str, Any]]:
        """Fetch a single commit including its file list."""
        return self.request_json(f"/repos/{owner}/{repo}/commits/{sha}", cancel_token=cancel_token)

    def get_commit_activity(
        self, owner: str, repo: str, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Weekly commit totals for the last year."""
        return self.request_list(
            f"/repos/{owner}/{repo}/stats/commit_activity", cancel_token=cancel_token
        )

    def list_branches(
        self, owner: str, repo: str, params=None, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        return self.request_list(f"/repos/{owner}/{repo}/branches", params, cancel_token)

    def list_pull_requests(
        self, owner: str, repo: str, params=None, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        return self.request_list(f"/repos/{owner}/{repo}/pulls", params, cancel_token)

    def list_pull_request_reviews(
        self, owner: str, repo: str, number: int, params=None, cancel_token=None
    ) -> ApiResult[List[Dict[str, Any]]]:
        return self.request_list(f"/repos/{owner}/{repo}/pulls/{number}/reviews", params, cancel_token)

    def compare_branches(
        self, owner: str, repo: str, base: str, head: str, cancel_token=None
    ) -> ApiResult[Dict[str, Any]]:
        """Ahead/behind comparison of two refs."""
        return self.request_json(
            f"/repos/{owner}/{repo}/compare/{base}...{head}", cancel_token=cancel_token
        )

    def close(self) -> None:
        """Close the requests session and release resources."""
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self) -> "GitHubApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
