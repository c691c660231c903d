"""Retry policy for fallible API operations."""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .cancellation import CancellationToken, is_cancelled, pause
from .constants import RETRY_CONFIG
from .errors import ApiResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float = RETRY_CONFIG['base_delay']) -> float:
    """Delay before retrying after the zero-based ``attempt`` failed."""
    return base_delay * (RETRY_CONFIG['backoff_base'] ** attempt)


def retry_with_backoff(
    operation: Callable[[], ApiResult[T]],
    max_retries: int = RETRY_CONFIG['max_retries'],
    base_delay: float = RETRY_CONFIG['base_delay'],
    cancel_token: Optional[CancellationToken] = None,
    description: str = "operation",
) -> ApiResult[T]:
    """Run ``operation`` until it succeeds or fails terminally.

    Only retryable error kinds (service unavailable, network errors) are
    tried again. Every other failure is returned after the first attempt.

    Args:
        operation: Zero-argument callable returning an ApiResult
        max_retries: Additional attempts after the first one
        base_delay: Seconds to wait after the first failure; doubled each time
        cancel_token: Checked before every attempt, including the first
        description: Used in log messages

    Returns:
        The first successful or terminal result, the cancellation result, or
        the last retryable failure once attempts are exhausted
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must not be negative, got {max_retries}")

    result: Optional[ApiResult[T]] = None
    for attempt in range(max_retries + 1):
        if is_cancelled(cancel_token):
            return ApiResult.cancelled()

        result = operation()
        if result.ok or not result.error.kind.retryable:
            return result

        if attempt == max_retries:
            break

        delay = backoff_delay(attempt, base_delay)
        logger.debug(
            f"Retrying {description} after {delay:.2f}s "
            f"(attempt {attempt + 1}/{max_retries}, {result.error.kind.value})"
        )
        if pause(delay, cancel_token):
            return ApiResult.cancelled()

    logger.warning(f"{description} failed after {max_retries} retries: {result.error.kind.value}")
    return result
