"""Async Jira REST API client using httpx.

This module provides a typed async interface to the Jira REST API v2
for issue retrieval. Every request goes through the shared RateLimiter,
which applies the per-request delay and retries on HTTP 429.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from jiracrawler.config import get_settings
from jiracrawler.logging import get_logger
from jiracrawler.schemas.issue import Comment, EnhancedFields, HistoryItem, Issue
from jiracrawler.schemas.jira_api import (
    ENHANCED_FIELD_NAMES,
    JiraChangelogResponse,
    JiraCommentsResponse,
    JiraEnhancedFieldsResponse,
    JiraIssue,
    JiraSearchResponse,
)

from .exceptions import (
    JiraAPIError,
    JiraAuthenticationError,
    JiraClientError,
    JiraDecodeError,
    JiraNotFoundError,
)
from .rate_limit import RateLimiter, get_default_rate_limiter

logger = get_logger(__name__)

API_PREFIX = "/rest/api/2"

ModelT = TypeVar("ModelT", bound=BaseModel)


class JiraClient:
    """Async Jira API client for issue data retrieval.

    Usage:
        async with JiraClient() as client:
            issue = await client.get_issue("CNF-123")
            comments = await client.get_issue_comments("CNF-123")

    Or without context manager:
        client = JiraClient(base_url="https://issues.redhat.com", token="...")
        issue = await client.get_issue("CNF-123")
        await client.close()
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the Jira client.

        Args:
            base_url: Jira instance URL. If not provided, uses JIRA_URL from settings.
            token: Personal access token. If not provided, uses JIRA_TOKEN from settings.
            rate_limiter: Limiter shared by all requests. Defaults to the
                          process-wide limiter.
            timeout: Per-request timeout in seconds (defaults to settings).

        Raises:
            JiraAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._base_url = (base_url or settings.jira_url).rstrip("/")
        self._token = token or settings.jira_token
        if not self._token:
            raise JiraAuthenticationError(
                "Jira token required. Set JIRA_TOKEN environment variable."
            )
        self._timeout = timeout or settings.request_timeout_s
        self._rate_limiter = rate_limiter or get_default_rate_limiter()
        self._client: httpx.AsyncClient | None = None

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/json",
                },
                timeout=self._timeout,
            )
        return self._client

    @property
    def base_url(self) -> str:
        """Jira instance URL (no trailing slash)."""
        return self._base_url

    @property
    def rate_limiter(self) -> RateLimiter:
        """Access the rate limiter used for every request."""
        return self._rate_limiter

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> JiraClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Request Plumbing
    # -------------------------------------------------------------------------
    async def request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        verbose: bool = False,
    ) -> httpx.Response:
        """Send a rate-limited GET request and return the raw response.

        Non-429 error statuses are returned, not raised.

        Raises:
            JiraTransportError: If the request could not be sent
            JiraRateLimitExhaustedError: If every attempt was rate limited
        """
        await self._rate_limiter.wait()
        request = self._http.build_request("GET", f"{API_PREFIX}{path}", params=params)
        return await self._rate_limiter.execute_with_retry(self._http, request, verbose=verbose)

    async def _get_model(
        self,
        model: type[ModelT],
        path: str,
        params: dict[str, Any] | None,
        what: str,
    ) -> ModelT:
        """GET a resource, require HTTP 200 and decode the body into ``model``."""
        response = await self.request(path, params)
        if response.status_code != httpx.codes.OK:
            raise self._handle_error(response, what)

        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise JiraDecodeError(f"failed to decode {what} response: {e}") from e

    # -------------------------------------------------------------------------
    # Issue Methods
    # -------------------------------------------------------------------------
    async def get_issue(self, key: str) -> Issue:
        """Get the base fields of a single issue.

        Raises:
            JiraNotFoundError: If the issue doesn't exist
        """
        jira_issue = await self._get_model(JiraIssue, f"/issue/{key}", None, "issue")
        return jira_issue.to_issue()

    async def probe_issue(self, key: str) -> httpx.Response:
        """Minimal read of an issue (only its id) to learn what we may see.

        Returns the raw response so the caller can inspect the status code.
        """
        return await self.request(f"/issue/{key}", {"fields": "id"})

    async def get_issue_comments(self, key: str) -> list[Comment]:
        """Get all comments of an issue, oldest first."""
        data = await self._get_model(
            JiraCommentsResponse, f"/issue/{key}/comment", None, "comments"
        )
        return data.to_comments()

    async def get_issue_history(self, key: str) -> list[HistoryItem]:
        """Get the change history (changelog) of an issue."""
        data = await self._get_model(
            JiraChangelogResponse, f"/issue/{key}", {"expand": "changelog"}, "history"
        )
        return data.to_history()

    async def get_enhanced_fields(self, key: str) -> EnhancedFields:
        """Get labels, components, priority, issue type and time tracking."""
        data = await self._get_model(
            JiraEnhancedFieldsResponse,
            f"/issue/{key}",
            {"fields": ",".join(ENHANCED_FIELD_NAMES)},
            "enhanced fields",
        )
        return data.to_enhanced_fields()

    async def search_issues(self, jql: str, *, max_results: int | None = None) -> list[Issue]:
        """Search issues with a prepared JQL string (single page).

        Args:
            jql: JQL query
            max_results: Page size (defaults to settings)

        Returns:
            List of issues with base fields only
        """
        limit = max_results or get_settings().enhance.search_max_results
        data = await self._get_model(
            JiraSearchResponse,
            "/search",
            {"jql": jql, "maxResults": limit},
            "search",
        )
        if data.total > len(data.issues):
            logger.debug(
                "Search returned {} of {} matching issues", len(data.issues), data.total
            )
        return [issue.to_issue() for issue in data.issues]

    async def get_myself(self) -> dict[str, Any]:
        """Get the user the token authenticates as (credential check)."""
        response = await self.request("/myself")
        if response.status_code != httpx.codes.OK:
            raise self._handle_error(response, "myself")
        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise JiraDecodeError(f"failed to decode myself response: {e}") from e
        return data

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, response: httpx.Response, what: str) -> JiraClientError:
        """Convert an unexpected status into our custom exceptions."""
        status = response.status_code
        body = response.text[:500]

        if status == httpx.codes.UNAUTHORIZED:
            return JiraAuthenticationError(f"Jira rejected the token ({what})", status_code=status)
        if status == httpx.codes.NOT_FOUND:
            return JiraNotFoundError(
                f"jira API returned status {status} for {what}: {body}",
                status_code=status,
                body=body,
            )
        return JiraAPIError(
            f"jira API returned status {status} for {what}: {body}",
            status_code=status,
            body=body,
        )
