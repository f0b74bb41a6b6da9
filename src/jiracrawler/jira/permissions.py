"""Permission probing for enhanced context fetches.

One cheap request (``?fields=id``) tells us whether the caller can see an
issue at all, and therefore whether fetching its comments and history is
worth the calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Flag
from typing import TYPE_CHECKING

import httpx

from jiracrawler.logging import get_logger

from .exceptions import JiraClientError

if TYPE_CHECKING:
    from .client import JiraClient

logger = get_logger(__name__)

DENIAL_STATUSES = frozenset({httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN})
"""Probe statuses that always revoke access to comments and history."""


class Capability(Flag):
    """What the caller may fetch for an issue."""

    NONE = 0
    VIEW_ISSUE = 1
    VIEW_COMMENTS = 2
    VIEW_HISTORY = 4

    ALL = VIEW_ISSUE | VIEW_COMMENTS | VIEW_HISTORY
    SUB_RESOURCES = VIEW_COMMENTS | VIEW_HISTORY

    @classmethod
    def from_status(cls, status_code: int) -> Capability:
        """Derive capabilities from the probe's HTTP status.

        - 200 grants everything.
        - Any other status grants nothing.
        - 401/403 additionally strip comments and history, whatever else
          granted them.
        """
        granted = cls.ALL if status_code == httpx.codes.OK else cls.NONE
        if status_code in DENIAL_STATUSES:
            granted = granted.without_sub_resources()
        return granted

    def without_sub_resources(self) -> Capability:
        """Same set with VIEW_COMMENTS and VIEW_HISTORY removed."""
        return self & ~Capability.SUB_RESOURCES


@dataclass(frozen=True)
class IssuePermissions:
    """Result of a permission probe.

    ``probed`` is False when the probe request itself failed; in that case
    every capability is granted so the caller proceeds optimistically and
    lets the individual sub-fetches fail on their own.
    """

    capabilities: Capability
    status_code: int | None = None
    probed: bool = True
    error: str | None = None

    @property
    def can_view_issue(self) -> bool:
        """Whether the base issue is visible."""
        return Capability.VIEW_ISSUE in self.capabilities

    @property
    def can_view_comments(self) -> bool:
        """Whether comments may be fetched."""
        return Capability.VIEW_COMMENTS in self.capabilities

    @property
    def can_view_history(self) -> bool:
        """Whether the changelog may be fetched."""
        return Capability.VIEW_HISTORY in self.capabilities

    @classmethod
    def from_status(cls, status_code: int) -> IssuePermissions:
        """Build from a probe response status."""
        return cls(capabilities=Capability.from_status(status_code), status_code=status_code)

    @classmethod
    def unverified(cls, error: Exception) -> IssuePermissions:
        """Build for a probe that could not be completed."""
        return cls(capabilities=Capability.ALL, probed=False, error=str(error))


async def check_permissions(client: JiraClient, key: str) -> IssuePermissions:
    """Probe an issue and derive what may be fetched for it.

    Never raises for request failures: a failed probe yields
    ``IssuePermissions.unverified``.

    Args:
        client: Jira client to probe with
        key: Issue key

    Returns:
        IssuePermissions for the issue
    """
    try:
        response = await client.probe_issue(key)
    except JiraClientError as e:
        logger.debug("Permission probe for {} failed: {}", key, e)
        return IssuePermissions.unverified(e)

    permissions = IssuePermissions.from_status(response.status_code)
    logger.debug(
        "Permission probe for {} returned {} -> {}",
        key,
        response.status_code,
        permissions.capabilities,
    )
    return permissions
