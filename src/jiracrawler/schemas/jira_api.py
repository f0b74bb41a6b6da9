"""Pydantic schemas for parsing Jira REST API v2 responses.

These schemas map directly to the Jira response structure and only
declare the parts we read. See:
https://docs.atlassian.com/software/jira/docs/api/REST/latest/
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .issue import (
    Comment,
    EnhancedFields,
    HistoryChange,
    HistoryItem,
    Issue,
    TimeTracking,
)

JIRA_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
"""Jira timestamp layout, e.g. 2025-01-01T12:00:00.000-0700."""


def parse_jira_timestamp(value: Any) -> datetime | None:
    """Parse a Jira timestamp, returning None for empty or unparseable values."""
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.strptime(value, JIRA_TIMESTAMP_FORMAT)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


JiraTimestamp = Annotated[datetime | None, BeforeValidator(parse_jira_timestamp)]


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


NullableStr = Annotated[str, BeforeValidator(_none_to_empty)]


class JiraModel(BaseModel):
    """Base for Jira response models (camelCase aliases, extra keys ignored)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JiraNamed(JiraModel):
    """Any Jira object identified by name (status, priority, issue type, component)."""

    name: NullableStr = ""


class JiraUser(JiraModel):
    """Jira user object from API responses."""

    display_name: NullableStr = Field(default="", alias="displayName")
    name: NullableStr = ""


class JiraProject(JiraModel):
    """Jira project reference."""

    key: NullableStr = ""
    name: NullableStr = ""


def _display_name(user: JiraUser | None) -> str | None:
    return user.display_name if user else None


def _name(named: JiraNamed | None) -> str:
    return named.name if named else ""


# -----------------------------------------------------------------------------
# Base Issue (GET /rest/api/2/issue/{key})
# -----------------------------------------------------------------------------
class JiraIssueFields(JiraModel):
    """The ``fields`` object of an issue."""

    summary: NullableStr = ""
    description: str | None = None
    status: JiraNamed | None = None
    priority: JiraNamed | None = None
    issuetype: JiraNamed | None = None
    project: JiraProject | None = None
    assignee: JiraUser | None = None
    reporter: JiraUser | None = None
    creator: JiraUser | None = None
    created: JiraTimestamp = None
    updated: JiraTimestamp = None
    resolutiondate: JiraTimestamp = None


class JiraIssue(JiraModel):
    """Jira issue object from API.

    Maps to: GET /rest/api/2/issue/{key}
    """

    key: str = Field(description="Issue key")
    fields: JiraIssueFields = Field(description="Issue fields")

    def to_issue(self) -> Issue:
        """
        Factory method to convert to the Issue model (base fields only).

        Returns:
            Issue with no enrichment applied
        """
        f = self.fields
        return Issue(
            key=self.key,
            summary=f.summary,
            description=f.description,
            status=_name(f.status),
            priority=_name(f.priority),
            issue_type=_name(f.issuetype),
            project=f.project.key if f.project else "",
            assignee=_display_name(f.assignee),
            reporter=_display_name(f.reporter),
            creator=_display_name(f.creator),
            created=f.created,
            updated=f.updated,
            resolved=f.resolutiondate,
        )


class JiraSearchResponse(JiraModel):
    """Response of GET /rest/api/2/search."""

    start_at: int = Field(default=0, alias="startAt")
    max_results: int = Field(default=0, alias="maxResults")
    total: int = 0
    issues: list[JiraIssue] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Comments (GET /rest/api/2/issue/{key}/comment)
# -----------------------------------------------------------------------------
class JiraComment(JiraModel):
    """Jira comment object."""

    id: str
    body: NullableStr = ""
    author: JiraUser | None = None
    created: JiraTimestamp = None
    updated: JiraTimestamp = None

    def to_comment(self) -> Comment:
        """Convert to the Comment model."""
        return Comment(
            id=self.id,
            author=_display_name(self.author) or "",
            body=self.body,
            created=self.created,
            updated=self.updated,
        )


class JiraCommentsResponse(JiraModel):
    """Response of the comments sub-resource."""

    comments: list[JiraComment] = Field(default_factory=list)

    def to_comments(self) -> list[Comment]:
        """Convert every comment, preserving order."""
        return [c.to_comment() for c in self.comments]


# -----------------------------------------------------------------------------
# History (GET /rest/api/2/issue/{key}?expand=changelog)
# -----------------------------------------------------------------------------
class JiraChangeItem(JiraModel):
    """One field change inside a changelog history entry."""

    field: NullableStr = ""
    fieldtype: NullableStr = ""
    from_string: NullableStr = Field(default="", alias="fromString")
    to_string: NullableStr = Field(default="", alias="toString")


class JiraHistory(JiraModel):
    """A changelog history entry."""

    id: str
    author: JiraUser | None = None
    created: JiraTimestamp = None
    items: list[JiraChangeItem] = Field(default_factory=list)

    def to_history_item(self) -> HistoryItem:
        """Convert to the HistoryItem model."""
        return HistoryItem(
            id=self.id,
            author=_display_name(self.author) or "",
            created=self.created,
            changes=[
                HistoryChange(
                    field=item.field,
                    field_type=item.fieldtype,
                    from_value=item.from_string,
                    to_value=item.to_string,
                )
                for item in self.items
            ],
        )


class JiraChangelog(JiraModel):
    """The ``changelog`` object of an expanded issue."""

    histories: list[JiraHistory] = Field(default_factory=list)


class JiraChangelogResponse(JiraModel):
    """Issue response expanded with its changelog."""

    changelog: JiraChangelog = Field(default_factory=JiraChangelog)

    def to_history(self) -> list[HistoryItem]:
        """Convert every history entry, preserving order."""
        return [h.to_history_item() for h in self.changelog.histories]


# -----------------------------------------------------------------------------
# Extended Fields (GET /rest/api/2/issue/{key}?fields=labels,components,...)
# -----------------------------------------------------------------------------
ENHANCED_FIELD_NAMES = ("labels", "components", "priority", "issuetype", "timetracking")


class JiraTimeTracking(JiraModel):
    """The ``timetracking`` field."""

    original_estimate: NullableStr = Field(default="", alias="originalEstimate")
    remaining_estimate: NullableStr = Field(default="", alias="remainingEstimate")
    time_spent: NullableStr = Field(default="", alias="timeSpent")


class JiraEnhancedFieldValues(JiraModel):
    """The ``fields`` object of a field-restricted issue response."""

    labels: list[str] | None = None
    components: list[JiraNamed] | None = None
    priority: JiraNamed | None = None
    issuetype: JiraNamed | None = None
    timetracking: JiraTimeTracking | None = None


class JiraEnhancedFieldsResponse(JiraModel):
    """Issue response restricted to the extended field set."""

    fields: JiraEnhancedFieldValues = Field(default_factory=JiraEnhancedFieldValues)

    def to_enhanced_fields(self) -> EnhancedFields:
        """
        Convert to the EnhancedFields model.

        Labels and components are deduplicated keeping first occurrence.
        Time tracking is only kept when an original estimate or time spent
        is recorded.
        """
        f = self.fields
        labels = list(dict.fromkeys(f.labels or []))
        components = list(dict.fromkeys(c.name for c in f.components or [] if c.name))

        time_tracking = None
        tt = f.timetracking
        if tt and (tt.original_estimate or tt.time_spent):
            time_tracking = TimeTracking(
                original_estimate=tt.original_estimate,
                remaining_estimate=tt.remaining_estimate,
                time_spent=tt.time_spent,
            )

        return EnhancedFields(
            labels=labels,
            components=components,
            priority=_name(f.priority),
            issue_type=_name(f.issuetype),
            time_tracking=time_tracking,
        )
