"""Parsing of the HTTP ``Retry-After`` response header."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Convert a Retry-After header value into seconds to wait.

    Both forms allowed by RFC 9110 are accepted:
        Retry-After: 120
        Retry-After: Wed, 21 Oct 2015 07:28:00 GMT

    Args:
        value: Raw header value (None if the header was absent)
        now: Reference time for HTTP-date values (defaults to current UTC time)

    Returns:
        Seconds to wait, or None if the header is absent, unparseable,
        zero, or names a date that has already passed.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    # str.isdigit() alone also accepts digits like "²" that int() rejects
    if value.isascii() and value.isdigit():
        seconds = int(value)
        return float(seconds) if seconds > 0 else None

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)

    delay = (retry_at - (now or datetime.now(UTC))).total_seconds()
    if delay <= 0:
        return None
    return delay


def get_retry_after(headers: Mapping[str, str]) -> float | None:
    """Read and parse the Retry-After header from response headers."""
    return parse_retry_after(headers.get("Retry-After"))
