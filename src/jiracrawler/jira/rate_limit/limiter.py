"""Shared request rate limiter with retry on HTTP 429.

The limiter does two jobs:

- ``wait()`` applies a fixed courtesy delay before a request.
- ``execute_with_retry()`` sends a request and, when Jira answers 429,
  waits (Retry-After header, else exponential backoff) and tries again
  until the retry budget is spent.

One limiter is normally shared by every client in the process. Its settings
can be changed at any time from any thread; a request in flight keeps the
settings it started with.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from jiracrawler.config import RateLimitConfig, get_settings
from jiracrawler.jira.exceptions import JiraRateLimitExhaustedError, JiraTransportError
from jiracrawler.logging import get_logger

from .locks import ReadWriteLock
from .retry_after import get_retry_after

logger = get_logger(__name__)

TOO_MANY_REQUESTS = 429


class RateLimiter:
    """Applies request delays and retries rate-limited requests.

    Usage:
        limiter = RateLimiter(delay=0.1, max_retries=3)

        async with httpx.AsyncClient(base_url=url) as http:
            await limiter.wait()
            request = http.build_request("GET", "/rest/api/2/issue/CNF-1")
            response = await limiter.execute_with_retry(http, request)

    Settings are guarded by a reader/writer lock: any number of tasks or
    threads may read them (or run requests) concurrently, updates are
    serialized.
    """

    def __init__(
        self,
        delay: float = 0.1,
        max_retries: int = 3,
        backoff_multiplier: float = 2.0,
        enabled: bool = True,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            delay: Seconds to wait before each request, and the backoff base
            max_retries: Retries allowed after a 429 (0 = single attempt)
            backoff_multiplier: Exponential factor applied per attempt (> 1)
            enabled: Whether wait() sleeps at all

        Raises:
            ValueError: If any setting is out of range
        """
        _check_delay(delay)
        _check_max_retries(max_retries)
        if backoff_multiplier <= 1:
            raise ValueError(f"backoff_multiplier must be > 1, got {backoff_multiplier}")

        self._delay = float(delay)
        self._max_retries = max_retries
        self._backoff_multiplier = float(backoff_multiplier)
        self._enabled = enabled
        self._lock = ReadWriteLock()

    @classmethod
    def from_config(cls, config: RateLimitConfig | None = None) -> RateLimiter:
        """Build a limiter from configuration (uses settings if not provided)."""
        config = config or get_settings().rate_limit
        return cls(
            delay=config.delay_seconds,
            max_retries=config.max_retries,
            backoff_multiplier=config.backoff_multiplier,
            enabled=config.enabled,
        )

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------
    @property
    def delay(self) -> float:
        """Per-request delay in seconds."""
        with self._lock.read():
            return self._delay

    @delay.setter
    def delay(self, value: float) -> None:
        _check_delay(value)
        with self._lock.write():
            self._delay = float(value)

    @property
    def max_retries(self) -> int:
        """Retries allowed after a 429 response."""
        with self._lock.read():
            return self._max_retries

    @max_retries.setter
    def max_retries(self, value: int) -> None:
        _check_max_retries(value)
        with self._lock.write():
            self._max_retries = value

    @property
    def enabled(self) -> bool:
        """Whether wait() applies the per-request delay."""
        with self._lock.read():
            return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        with self._lock.write():
            self._enabled = value

    @property
    def backoff_multiplier(self) -> float:
        """Exponential backoff factor."""
        with self._lock.read():
            return self._backoff_multiplier

    # -------------------------------------------------------------------------
    # Request Execution
    # -------------------------------------------------------------------------
    async def wait(self) -> None:
        """Sleep for the configured delay if enabled. Never fails."""
        with self._lock.read():
            enabled = self._enabled
            delay = self._delay

        if enabled and delay > 0:
            await asyncio.sleep(delay)

    async def execute_with_retry(
        self,
        http: httpx.AsyncClient,
        request: httpx.Request,
        *,
        verbose: bool = False,
    ) -> httpx.Response:
        """Send a request, retrying while Jira answers 429.

        Any response other than 429 is returned as-is; interpreting 404, 500
        and friends is the caller's job. Transport failures are not retried.

        Args:
            http: Client used to send the request
            request: Prepared request (sent once per attempt)
            verbose: Log retry decisions at INFO instead of DEBUG

        Returns:
            The first non-429 response

        Raises:
            JiraTransportError: If the request could not be sent at all
            JiraRateLimitExhaustedError: If every attempt was rate limited
        """
        # Snapshot so a concurrent settings change cannot affect this call
        with self._lock.read():
            max_retries = self._max_retries
            base_delay = self._delay
            multiplier = self._backoff_multiplier

        level = "INFO" if verbose else "DEBUG"

        for attempt in range(max_retries + 1):
            try:
                response = await http.send(request)
            except httpx.HTTPError as e:
                raise JiraTransportError(f"HTTP request failed: {e}") from e

            if response.status_code != TOO_MANY_REQUESTS:
                return response

            await response.aclose()

            if attempt >= max_retries:
                break

            retry_after = get_retry_after(response.headers)
            if retry_after is not None:
                backoff = retry_after
                source = "Retry-After header"
            else:
                backoff = _backoff(base_delay, multiplier, attempt)
                source = "exponential backoff"

            logger.log(
                level,
                "Rate limited (429) on {} {}, retrying in {:.2f}s ({}, attempt {}/{})",
                request.method,
                request.url.path,
                backoff,
                source,
                attempt + 1,
                max_retries,
            )
            await asyncio.sleep(backoff)

        logger.warning(
            "Rate limit exceeded for {} {} after {} retries",
            request.method,
            request.url.path,
            max_retries,
        )
        raise JiraRateLimitExhaustedError(
            f"rate limit exceeded after {max_retries} retries",
            attempts=max_retries + 1,
        )

    def to_dict(self) -> dict[str, Any]:
        """Export current settings (for logging/display)."""
        with self._lock.read():
            return {
                "delay_ms": round(self._delay * 1000, 2),
                "max_retries": self._max_retries,
                "backoff_multiplier": self._backoff_multiplier,
                "enabled": self._enabled,
            }


def _backoff(base_delay: float, multiplier: float, attempt: int) -> float:
    return base_delay * (multiplier**attempt)


def _check_delay(delay: float) -> None:
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got {delay}")


def _check_max_retries(max_retries: int) -> None:
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")


# -----------------------------------------------------------------------------
# Process-wide Default Instance
#
# Created lazily from settings on first use, replaceable, never torn down.
# Only the CLI entry point should install one; library code takes a limiter
# explicitly and falls back to this only when none is given.
# -----------------------------------------------------------------------------
_default_limiter: RateLimiter | None = None
_default_lock = ReadWriteLock()


def get_default_rate_limiter() -> RateLimiter:
    """Get the process-wide limiter, creating it from settings on first use."""
    global _default_limiter

    with _default_lock.read():
        limiter = _default_limiter
    if limiter is not None:
        return limiter

    with _default_lock.write():
        if _default_limiter is None:
            _default_limiter = RateLimiter.from_config()
        return _default_limiter


def set_default_rate_limiter(limiter: RateLimiter) -> None:
    """Install a new process-wide limiter."""
    global _default_limiter
    with _default_lock.write():
        _default_limiter = limiter


def set_rate_limit_delay(delay: float) -> None:
    """Set the delay (seconds) on whichever default limiter is installed."""
    get_default_rate_limiter().delay = delay


def enable_rate_limiting() -> None:
    """Enable the per-request delay on the default limiter."""
    get_default_rate_limiter().enabled = True


def disable_rate_limiting() -> None:
    """Disable the per-request delay on the default limiter (useful for testing)."""
    get_default_rate_limiter().enabled = False
