"""Helper utilities for building GitHub API request parameters."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .constants import API_DEFAULTS


def build_list_params(
    state: str = "all",
    sort: str = "updated",
    direction: str = "desc",
    per_page: Optional[int] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Build common parameters for GitHub list API endpoints.

    Examples:
        >>> build_list_params()
        {'state': 'all', 'sort': 'updated', 'direction': 'desc', 'per_page': 100}

        >>> build_list_params(state='open', per_page=50)
        {'state': 'open', 'sort': 'updated', 'direction': 'desc', 'per_page': 50}
    """
    params: Dict[str, Any] = {
        "state": state,
        "sort": sort,
        "direction": direction,
        "per_page": per_page if per_page is not None else API_DEFAULTS["per_page"],
    }
    params.update(kwargs)
    return params


def build_commits_params(
    since: Optional[str] = None,
    until: Optional[str] = None,
    author: Optional[str] = None,
    per_page: Optional[int] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Build parameters for the commits list endpoint.

    Examples:
        >>> build_commits_params(since='2024-01-01T00:00:00+00:00', per_page=50)
        {'per_page': 50, 'since': '2024-01-01T00:00:00+00:00'}
    """
    params: Dict[str, Any] = {
        "per_page": per_page if per_page is not None else API_DEFAULTS["per_page"],
    }
    if since is not None:
        params["since"] = since
    if until is not None:
        params["until"] = until
    if author is not None:
        params["author"] = author
    params.update(kwargs)
    return params
