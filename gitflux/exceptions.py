"""Custom exceptions for the gitflux analytics toolkit."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type

if TYPE_CHECKING:
    from .errors import ApiFailure, ErrorKind


class GitFluxError(Exception):
    """Base exception for all gitflux errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(GitFluxError, ValueError):
    """Raised when the configuration file cannot be read or is invalid."""
    pass


# =============================================================================
# API Errors
# =============================================================================


class ApiError(GitFluxError):
    """Raised when a classified GitHub API failure is surfaced as an exception."""

    def __init__(self, failure: "ApiFailure", context: str | None = None):
        """Initialize API error.

        Args:
            failure: Classified failure returned by the transport or fetcher
            context: Optional description of what was being done
        """
        from .errors import format_error_message

        super().__init__(format_error_message(failure.kind, context, failure.rate_limit))
        self.failure = failure
        self.kind = failure.kind
        self.status_code = failure.status_code


class NotFoundError(ApiError):
    """Raised when the repository or resource does not exist."""
    pass


class RateLimitError(ApiError):
    """Raised when GitHub API rate limit is exceeded."""
    pass


class AccessForbiddenError(ApiError):
    """Raised when access is refused for reasons other than rate limiting."""
    pass


class ServiceUnavailableError(ApiError):
    """Raised when GitHub answered with a 5xx status."""
    pass


class RequestValidationError(ApiError):
    """Raised when GitHub rejected the request parameters (422)."""
    pass


class NetworkError(ApiError):
    """Raised when the request never produced an HTTP response."""
    pass


class CancelledError(ApiError):
    """Raised when the operation was cancelled by its caller."""
    pass


class UnexpectedApiError(ApiError):
    """Raised for any other unsuccessful response."""
    pass


def exception_for(kind: "ErrorKind") -> Type[ApiError]:
    """Return the exception class matching an error kind."""
    from .errors import ErrorKind

    mapping: Dict[ErrorKind, Type[ApiError]] = {
        ErrorKind.NOT_FOUND: NotFoundError,
        ErrorKind.RATE_LIMIT_EXCEEDED: RateLimitError,
        ErrorKind.ACCESS_FORBIDDEN: AccessForbiddenError,
        ErrorKind.SERVICE_UNAVAILABLE: ServiceUnavailableError,
        ErrorKind.VALIDATION_ERROR: RequestValidationError,
        ErrorKind.NETWORK_ERROR: NetworkError,
        ErrorKind.CANCELLED: CancelledError,
        ErrorKind.UNEXPECTED: UnexpectedApiError,
    }
    return mapping[kind]


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(GitFluxError):
    """Base exception for validation errors."""
    pass


class InvalidRepositoryError(ValidationError):
    """Raised when the repository format is invalid."""
    pass


class InvalidPeriodError(ValidationError):
    """Raised when a time period token is not recognised."""
    pass
