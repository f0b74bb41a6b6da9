"""Pydantic schemas for jiracrawler.

This module provides Jira response parsing models and the immutable
issue models handed back to callers.
"""

from .enums import EnrichmentSection, OutputFormat
from .issue import (
    Comment,
    EnhancedFields,
    EnrichmentWarning,
    HistoryChange,
    HistoryItem,
    Issue,
    TimeTracking,
)
from .jira_api import (
    ENHANCED_FIELD_NAMES,
    JiraChangelogResponse,
    JiraCommentsResponse,
    JiraEnhancedFieldsResponse,
    JiraIssue,
    JiraSearchResponse,
    parse_jira_timestamp,
)

__all__ = [
    # Enums
    "EnrichmentSection",
    "OutputFormat",
    # Issue models
    "Comment",
    "EnhancedFields",
    "EnrichmentWarning",
    "HistoryChange",
    "HistoryItem",
    "Issue",
    "TimeTracking",
    # Jira API response schemas
    "ENHANCED_FIELD_NAMES",
    "JiraChangelogResponse",
    "JiraCommentsResponse",
    "JiraEnhancedFieldsResponse",
    "JiraIssue",
    "JiraSearchResponse",
    "parse_jira_timestamp",
]
