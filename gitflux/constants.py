"""Shared constants for the gitflux analytics toolkit."""

from __future__ import annotations

# =============================================================================
# API and HTTP Configuration
# =============================================================================

# GitHub API pagination defaults
API_PAGINATION = {
    'default_per_page': 100,
    'max_per_page': 100,
    'min_per_page': 1,
}

# GitHub API request defaults
API_DEFAULTS = {
    'per_page': 100,
    'state': 'all',
    'sort': 'updated',
    'direction': 'desc',
    'timeout': 30,
}

# Retry configuration
RETRY_CONFIG = {
    'backoff_base': 2,  # delay = base_delay * 2^attempt
    'base_delay': 1.0,
    'max_retries': 3,
}

# Rate limit header names and fallbacks
RATE_LIMIT_HEADERS = {
    'remaining': 'X-RateLimit-Remaining',
    'reset': 'X-RateLimit-Reset',
    'limit': 'X-RateLimit-Limit',
    'default_limit': 5000,
}

# Orchestrated fetch defaults
FETCH_DEFAULTS = {
    'max_records': 1000,
    'rate_limit_threshold': 50,
    'page_delay': 0.1,
    'max_review_prs': 50,
    'max_branch_details': 20,
    'contributor_max_records': 500,
}

# =============================================================================
# Cache Configuration
# =============================================================================

CACHE_CONFIG = {
    'fetch_ttl_seconds': 15 * 60,
    'fetch_max_entries': 100,
    'transform_ttl_seconds': 5 * 60,
    'transform_max_entries': 50,
    'transform_key_sample': 10,  # record ids folded into a transformation key
}

# =============================================================================
# Analysis Thresholds
# =============================================================================

SECONDS_PER_DAY = 24 * 60 * 60

ACTIVITY_WINDOWS = {
    'active_days': 30,
    'stale_days': 90,
}

HOTSPOT_THRESHOLDS = {
    'mean_multiplier': 1.5,
    'minimum_changes': 5,
}

TREND_THRESHOLDS = {
    'slope_epsilon': 0.1,
}

PR_SIZE_LIMITS = (
    ('XS', 10),
    ('S', 50),
    ('M', 200),
    ('L', 500),
)

BRANCH_HEALTH = {
    'stale_penalty': 50,    # > 90 days
    'idle_penalty': 25,     # > 30 days
    'recent_penalty': 10,   # > 7 days
    'default_bonus': 20,
    'far_behind_penalty': 20,   # > 50 commits behind
    'behind_penalty': 10,       # > 10 commits behind
}

TOP_CONTRIBUTORS_LIMIT = 10

DAY_NAMES = (
    'Sunday',
    'Monday',
    'Tuesday',
    'Wednesday',
    'Thursday',
    'Friday',
    'Saturday',
)
