"""Test fixtures for jiracrawler."""

from .jira_responses import (
    ISSUE_KEY,
    JIRA_CHANGELOG_RESPONSE,
    JIRA_COMMENTS_RESPONSE,
    JIRA_EMPTY_ENHANCED_FIELDS_RESPONSE,
    JIRA_ENHANCED_FIELDS_RESPONSE,
    JIRA_FORBIDDEN_RESPONSE,
    JIRA_ISSUE_RESPONSE,
    JIRA_MYSELF_RESPONSE,
    JIRA_NOT_FOUND_RESPONSE,
    JIRA_PROBE_RESPONSE,
    make_issue_response,
    make_search_response,
)

__all__ = [
    "ISSUE_KEY",
    # Mock Jira API responses
    "JIRA_CHANGELOG_RESPONSE",
    "JIRA_COMMENTS_RESPONSE",
    "JIRA_EMPTY_ENHANCED_FIELDS_RESPONSE",
    "JIRA_ENHANCED_FIELDS_RESPONSE",
    "JIRA_FORBIDDEN_RESPONSE",
    "JIRA_ISSUE_RESPONSE",
    "JIRA_MYSELF_RESPONSE",
    "JIRA_NOT_FOUND_RESPONSE",
    "JIRA_PROBE_RESPONSE",
    # Factories
    "make_issue_response",
    "make_search_response",
]
