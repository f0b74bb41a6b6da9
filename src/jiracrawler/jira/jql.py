"""JQL string helpers for the CLI searches.

These only assemble query strings; they do not interpret JQL.
"""

from __future__ import annotations

import re
from datetime import date, datetime

DATE_FORMAT = "%Y-%m-%d"
_DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date.

    Raises:
        ValueError: If the value is not a valid YYYY-MM-DD date
    """
    if _DATE_SHAPE.fullmatch(value):
        try:
            return datetime.strptime(value, DATE_FORMAT).date()
        except ValueError:
            pass
    raise ValueError(f"invalid date {value!r}, use YYYY-MM-DD")


def assigned_issues_jql(project: str, assignee: str) -> str:
    """Issues of a project assigned to a user, newest first."""
    return f"project={project} AND assignee={_quote(assignee)} ORDER BY created DESC"


def updated_in_range_jql(assignee: str, start: str, end: str) -> str:
    """Issues assigned to a user and updated between two dates (inclusive).

    Raises:
        ValueError: If a date is malformed or the range is reversed
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    if end_date < start_date:
        raise ValueError(f"end date {end} is before start date {start}")

    return (
        f"assignee={_quote(assignee)} "
        f'AND updated >= "{start_date.strftime(DATE_FORMAT)}" '
        f'AND updated <= "{end_date.strftime(DATE_FORMAT)}" '
        "ORDER BY updated DESC"
    )
