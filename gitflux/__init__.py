"""Repository activity analytics for GitHub.

Fetches commits, pull requests, reviews and branches with bounded,
cancellable pagination and turns them into heatmaps, trends, timelines
and file churn reports.
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .config import Config
from .errors import ApiFailure, ApiResult, ErrorKind
from .fetcher import FetchOptions
from .periods import TimePeriod
from .service import RepositoryAnalytics

__version__ = "0.1.0"

__all__ = [
    "ApiFailure",
    "ApiResult",
    "CancellationToken",
    "Config",
    "ErrorKind",
    "FetchOptions",
    "RepositoryAnalytics",
    "TimePeriod",
    "__version__",
]
