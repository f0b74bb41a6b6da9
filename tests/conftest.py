"""Pytest configuration and shared fixtures.

Usage Guide:
- For schema parsing tests: import response dicts from tests.fixtures
- For client/aggregator tests: use `jira_api` (respx router) and `mock_issue`
- For retry/backoff timing: use `sleeps`, which records asyncio.sleep calls
  instead of sleeping
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import pytest
import respx

from jiracrawler.config import get_settings
from jiracrawler.jira import JiraClient, RateLimiter
from jiracrawler.jira.rate_limit import limiter as limiter_module
from tests.fixtures import (
    ISSUE_KEY,
    JIRA_CHANGELOG_RESPONSE,
    JIRA_COMMENTS_RESPONSE,
    JIRA_ENHANCED_FIELDS_RESPONSE,
    JIRA_ISSUE_RESPONSE,
    JIRA_PROBE_RESPONSE,
)

BASE_URL = "https://jira.example.com"
API_URL = f"{BASE_URL}/rest/api/2"
TEST_TOKEN = "test-token"

# A canned reply: (status, JSON body) or an exception to raise instead
Reply = tuple[int, Any] | Exception


# -----------------------------------------------------------------------------
# Isolation
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _jira_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Point settings at the mock Jira instance and a per-test config file."""
    monkeypatch.setenv("JIRACRAWLER_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.setenv("JIRA_URL", BASE_URL)
    monkeypatch.setenv("JIRA_TOKEN", TEST_TOKEN)
    monkeypatch.delenv("JIRA_USER", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _isolated_default_limiter(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test starts without a process-wide limiter installed."""
    monkeypatch.setattr(limiter_module, "_default_limiter", None)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record asyncio.sleep durations instead of sleeping."""
    recorded: list[float] = []

    async def _fake_sleep(delay: float, result: Any = None) -> Any:
        recorded.append(delay)
        return result

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)
    return recorded


# -----------------------------------------------------------------------------
# Jira API Mocking
# -----------------------------------------------------------------------------
@pytest.fixture
def jira_api():
    """respx router for the mock Jira REST API (paths relative to /rest/api/2)."""
    with respx.mock(base_url=API_URL, assert_all_called=False) as router:
        yield router


def respond(reply: Reply) -> httpx.Response:
    """Build a response from a canned reply, or raise it."""
    if isinstance(reply, Exception):
        raise reply
    status, body = reply
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, json=body)


@dataclass
class IssueRoutes:
    """respx routes installed by `mock_issue`."""

    issue: respx.Route
    comments: respx.Route

    def calls_with(self, param: str, value: str | None = None) -> int:
        """Count issue-route calls carrying a query parameter (optionally a value)."""
        return sum(
            1
            for call in self.issue.calls
            if param in call.request.url.params
            and (value is None or call.request.url.params[param] == value)
        )


@pytest.fixture
def mock_issue(jira_api: respx.MockRouter) -> Callable[..., IssueRoutes]:
    """Install routes for every request an enhanced fetch makes for one issue.

    GET /issue/{key} is dispatched on its query parameters:
    ``fields=id`` is the permission probe, ``expand=changelog`` the history,
    any other ``fields`` the extended fields, and no parameters the base issue.
    """

    def _install(
        key: str = ISSUE_KEY,
        *,
        base: Reply = (200, JIRA_ISSUE_RESPONSE),
        probe: Reply = (200, JIRA_PROBE_RESPONSE),
        comments: Reply = (200, JIRA_COMMENTS_RESPONSE),
        history: Reply = (200, JIRA_CHANGELOG_RESPONSE),
        fields: Reply = (200, JIRA_ENHANCED_FIELDS_RESPONSE),
    ) -> IssueRoutes:
        def _dispatch(request: httpx.Request) -> httpx.Response:
            params = request.url.params
            if params.get("fields") == "id":
                return respond(probe)
            if params.get("expand") == "changelog":
                return respond(history)
            if "fields" in params:
                return respond(fields)
            return respond(base)

        issue_route = jira_api.get(f"/issue/{key}").mock(side_effect=_dispatch)
        comment_route = jira_api.get(f"/issue/{key}/comment").mock(
            side_effect=lambda request: respond(comments)
        )
        return IssueRoutes(issue=issue_route, comments=comment_route)

    return _install


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def rate_limiter() -> RateLimiter:
    """Limiter with no courtesy delay and a small retry budget."""
    return RateLimiter(delay=0, max_retries=3)


@pytest.fixture
async def client(rate_limiter: RateLimiter):
    """JiraClient against the mock instance, closed after the test."""
    jira = JiraClient(base_url=BASE_URL, token=TEST_TOKEN, rate_limiter=rate_limiter)
    yield jira
    await jira.close()
