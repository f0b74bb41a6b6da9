"""Enhanced context: an issue plus its comments, history and extended fields.

The aggregator fetches the base issue, probes permissions, then runs each
permitted sub-fetch on its own. Only a failed base fetch is fatal; every
other failure is logged, recorded as a warning on the returned issue, and
leaves that field group unset.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from jiracrawler.logging import bind_issue
from jiracrawler.schemas.enums import EnrichmentSection
from jiracrawler.schemas.issue import Issue

from .exceptions import BaseFetchFailedError, JiraClientError
from .permissions import check_permissions

if TYPE_CHECKING:
    from .client import JiraClient


class EnhancedContextAggregator:
    """Builds enriched issues, degrading field group by field group.

    Usage:
        async with JiraClient() as client:
            aggregator = EnhancedContextAggregator(client)
            issue = await aggregator.fetch_enriched("CNF-123")

            for warning in issue.warnings:
                print(warning.section, warning.message)

    Calls are strictly sequential. The aggregator never retries; retrying
    rate-limited requests is the RateLimiter's job.
    """

    def __init__(self, client: JiraClient) -> None:
        """Initialize the aggregator.

        Args:
            client: Jira client used for every request
        """
        self._client = client

    async def fetch_enriched(self, key: str, verbose: bool = False) -> Issue:
        """Fetch an issue with all the context the caller may see.

        Args:
            key: Issue key (e.g. CNF-123)
            verbose: Log per-step progress at INFO instead of DEBUG

        Returns:
            The issue, with comments/history/labels/components/time tracking
            set where permitted and successfully fetched

        Raises:
            BaseFetchFailedError: If the base issue could not be fetched
        """
        log = bind_issue(key, name=__name__)
        level = "INFO" if verbose else "DEBUG"

        try:
            result = await self._client.get_issue(key)
        except JiraClientError as e:
            raise BaseFetchFailedError(f"failed to fetch issue {key}: {e}", key=key) from e

        log.log(level, "Fetching enhanced context for issue {}", key)

        permissions = await check_permissions(self._client, key)
        if not permissions.probed:
            message = f"failed to check permissions: {permissions.error}"
            log.warning("{} for {}, continuing anyway", message, key)
            result = result.with_warning(EnrichmentSection.PERMISSIONS, message)
        elif not permissions.can_view_issue:
            message = (
                f"insufficient permissions to view issue (status {permissions.status_code}), "
                "skipping enhanced context"
            )
            log.warning("{} for {}", message, key)
            return result.with_warning(EnrichmentSection.PERMISSIONS, message)

        # Comments
        if permissions.can_view_comments:
            try:
                comments = await self._client.get_issue_comments(key)
            except JiraClientError as e:
                log.warning("failed to fetch comments for {}: {}", key, e)
                result = result.with_warning(
                    EnrichmentSection.COMMENTS, f"failed to fetch comments: {e}"
                )
            else:
                result = result.model_copy(update={"comments": comments})
                log.log(level, "Fetched {} comments for {}", len(comments), key)
        else:
            log.log(level, "Skipping comments for {} (insufficient permissions)", key)
            result = result.with_warning(
                EnrichmentSection.COMMENTS, "skipped: insufficient permissions"
            )

        # History
        if permissions.can_view_history:
            try:
                history = await self._client.get_issue_history(key)
            except JiraClientError as e:
                log.warning("failed to fetch history for {}: {}", key, e)
                result = result.with_warning(
                    EnrichmentSection.HISTORY, f"failed to fetch history: {e}"
                )
            else:
                result = result.model_copy(update={"history": history})
                log.log(level, "Fetched {} history entries for {}", len(history), key)
        else:
            log.log(level, "Skipping history for {} (insufficient permissions)", key)
            result = result.with_warning(
                EnrichmentSection.HISTORY, "skipped: insufficient permissions"
            )

        # Extended fields are attempted regardless of the probe outcome
        try:
            fields = await self._client.get_enhanced_fields(key)
        except JiraClientError as e:
            log.warning("failed to fetch enhanced fields for {}: {}", key, e)
            result = result.with_warning(
                EnrichmentSection.FIELDS, f"failed to fetch enhanced fields: {e}"
            )
        else:
            update: dict[str, object] = {}
            if fields.labels:
                update["labels"] = fields.labels
            if fields.components:
                update["components"] = fields.components
            if fields.time_tracking is not None:
                update["time_tracking"] = fields.time_tracking
            result = result.model_copy(update=update)
            log.log(level, "Fetched enhanced fields for {}", key)

        return result


async def fetch_issue_with_enhanced_context(
    client: JiraClient,
    key: str,
    verbose: bool = False,
) -> Issue:
    """Convenience function for a one-off enhanced context fetch.

    Args:
        client: Jira client
        key: Issue key
        verbose: Log per-step progress at INFO

    Returns:
        Enriched issue

    Raises:
        BaseFetchFailedError: If the base issue could not be fetched
    """
    return await EnhancedContextAggregator(client).fetch_enriched(key, verbose=verbose)
