"""Classification of GitHub API failures into a closed error taxonomy."""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

import requests

from .constants import RATE_LIMIT_HEADERS
from .exceptions import exception_for
from .models import RateLimitInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONTEXT = "fetching data from GitHub"


class ErrorKind(str, Enum):
    """Every way a GitHub API call can fail."""

    NOT_FOUND = "not_found"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    ACCESS_FORBIDDEN = "access_forbidden"
    SERVICE_UNAVAILABLE = "service_unavailable"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"

    @property
    def retryable(self) -> bool:
        """Whether the backoff wrapper may try the operation again."""
        return self in (ErrorKind.SERVICE_UNAVAILABLE, ErrorKind.NETWORK_ERROR)


MESSAGE_TEMPLATES = {
    ErrorKind.NOT_FOUND: (
        "Repository not found while {context}. "
        "Please verify the repository exists and is accessible."
    ),
    ErrorKind.RATE_LIMIT_EXCEEDED: (
        "GitHub API rate limit exceeded while {context}. "
        "The limit resets in {reset}. "
        "Consider using authentication to increase your rate limit."
    ),
    ErrorKind.ACCESS_FORBIDDEN: (
        "Access forbidden while {context}. "
        "The repository may be private or require authentication."
    ),
    ErrorKind.SERVICE_UNAVAILABLE: (
        "GitHub API is temporarily unavailable while {context}. "
        "Please try again in a few minutes."
    ),
    ErrorKind.VALIDATION_ERROR: (
        "Invalid request parameters while {context}. "
        "Please check the repository name and time range."
    ),
    ErrorKind.NETWORK_ERROR: (
        "Network error while {context}. "
        "Please check your internet connection and try again."
    ),
    ErrorKind.CANCELLED: "Request was cancelled while {context}.",
    ErrorKind.UNEXPECTED: "An unexpected error occurred while {context}. Please try again.",
}


@dataclass(frozen=True)
class ApiFailure:
    """A classified failure, produced once at the transport boundary."""

    kind: ErrorKind
    status_code: Optional[int] = None
    rate_limit: Optional[RateLimitInfo] = None
    detail: str = ""

    def message(self, context: Optional[str] = None) -> str:
        """Render the user-facing message for this failure."""
        return format_error_message(self.kind, context, self.rate_limit)


@dataclass
class ApiResult(Generic[T]):
    """Outcome of a request or orchestrated fetch.

    Exactly one of ``data`` and ``error`` is meaningful: a result with an
    error carries no data. A partial fetch stopped by the rate-limit
    threshold is still a success, flagged with ``rate_limit_warning``.
    """

    data: Optional[T] = None
    error: Optional[ApiFailure] = None
    rate_limit: Optional[RateLimitInfo] = None
    rate_limit_warning: bool = False
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        rate_limit: Optional[RateLimitInfo] = None,
        status_code: Optional[int] = None,
        detail: str = "",
    ) -> "ApiResult[T]":
        """Build a failed result from an error kind."""
        return cls(
            error=ApiFailure(kind=kind, status_code=status_code, rate_limit=rate_limit, detail=detail),
            rate_limit=rate_limit,
        )

    @classmethod
    def cancelled(cls) -> "ApiResult[T]":
        return cls.failure(ErrorKind.CANCELLED)

    def unwrap(self, context: Optional[str] = None) -> T:
        """Return the data or raise the matching :class:`ApiError` subclass.

        Raises:
            ApiError: If the result carries an error
        """
        if self.error is not None:
            raise exception_for(self.error.kind)(self.error, context)
        return self.data  # type: ignore[return-value]


def rate_limit_reset_in(rate_limit: Optional[RateLimitInfo], now: Optional[float] = None) -> str:
    """Human-readable time until the rate limit window resets.

    Args:
        rate_limit: Rate limit metadata from the last response
        now: Current epoch seconds (defaults to ``time.time()``)

    Returns:
        "Unknown", "Now", "1 minute", "N minutes", "1 hour" or "N hours"
    """
    if rate_limit is None:
        return "Unknown"

    current = time.time() if now is None else now
    diff_minutes = math.ceil((rate_limit.reset - current) / 60)

    if diff_minutes <= 0:
        return "Now"
    if diff_minutes == 1:
        return "1 minute"
    if diff_minutes < 60:
        return f"{diff_minutes} minutes"

    hours = math.ceil(diff_minutes / 60)
    return "1 hour" if hours == 1 else f"{hours} hours"


def format_error_message(
    kind: ErrorKind,
    context: Optional[str] = None,
    rate_limit: Optional[RateLimitInfo] = None,
) -> str:
    """Render the fixed message template for an error kind.

    Args:
        kind: Classified error kind
        context: What was being done, e.g. "fetching branches"
        rate_limit: Used for the reset countdown of rate-limit errors

    Returns:
        User-facing message
    """
    return MESSAGE_TEMPLATES[kind].format(
        context=context or DEFAULT_CONTEXT,
        reset=rate_limit_reset_in(rate_limit),
    )


def extract_rate_limit(headers: Any) -> Optional[RateLimitInfo]:
    """Read rate limit metadata from response headers.

    Returns None when the response carries no rate limit headers at all.
    """
    remaining = headers.get(RATE_LIMIT_HEADERS['remaining'])
    if remaining is None:
        return None

    try:
        return RateLimitInfo(
            remaining=int(remaining),
            reset=int(headers.get(RATE_LIMIT_HEADERS['reset']) or 0),
            limit=int(headers.get(RATE_LIMIT_HEADERS['limit']) or RATE_LIMIT_HEADERS['default_limit']),
        )
    except (TypeError, ValueError):
        logger.debug(f"Ignoring malformed rate limit headers: remaining={remaining!r}")
        return None


def _mentions_rate_limit(response: requests.Response) -> bool:
    try:
        payload = response.json()
    except (ValueError, json.JSONDecodeError):
        return "rate limit" in (response.text or "").lower()
    message = payload.get("message", "") if isinstance(payload, dict) else ""
    return "rate limit" in str(message).lower()


def classify_response(response: requests.Response) -> Optional[ApiFailure]:
    """Classify an HTTP response; return None for a success.

    Args:
        response: Response returned by the transport

    Returns:
        ApiFailure for non-2xx responses, None otherwise
    """
    status = response.status_code
    if 200 <= status < 300:
        return None

    rate_limit = extract_rate_limit(response.headers)

    if status == 404:
        kind = ErrorKind.NOT_FOUND
    elif status == 429:
        kind = ErrorKind.RATE_LIMIT_EXCEEDED
    elif status == 403:
        exhausted = rate_limit is not None and rate_limit.remaining <= 0
        if exhausted or _mentions_rate_limit(response):
            kind = ErrorKind.RATE_LIMIT_EXCEEDED
        else:
            kind = ErrorKind.ACCESS_FORBIDDEN
    elif status == 422:
        kind = ErrorKind.VALIDATION_ERROR
    elif status >= 500:
        kind = ErrorKind.SERVICE_UNAVAILABLE
    else:
        kind = ErrorKind.UNEXPECTED

    return ApiFailure(
        kind=kind,
        status_code=status,
        rate_limit=rate_limit,
        detail=f"{status} {response.reason or ''}".strip(),
    )


def classify_exception(exc: Exception) -> ApiFailure:
    """Classify a transport-level exception.

    Connection failures and timeouts become ``NETWORK_ERROR``; anything else
    raised by ``requests`` is ``UNEXPECTED``.
    """
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ApiFailure(kind=ErrorKind.NETWORK_ERROR, detail=str(exc))
    return ApiFailure(kind=ErrorKind.UNEXPECTED, detail=str(exc))
