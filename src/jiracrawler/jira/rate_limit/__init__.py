"""Request rate limiting for the Jira API.

This module provides the shared RateLimiter used by every Jira request:
a per-request delay plus retry with backoff on HTTP 429.
"""

from .limiter import (
    RateLimiter,
    disable_rate_limiting,
    enable_rate_limiting,
    get_default_rate_limiter,
    set_default_rate_limiter,
    set_rate_limit_delay,
)
from .locks import ReadWriteLock
from .retry_after import get_retry_after, parse_retry_after

__all__ = [
    "RateLimiter",
    "ReadWriteLock",
    # Default instance
    "disable_rate_limiting",
    "enable_rate_limiting",
    "get_default_rate_limiter",
    "set_default_rate_limiter",
    "set_rate_limit_delay",
    # Retry-After parsing
    "get_retry_after",
    "parse_retry_after",
]
