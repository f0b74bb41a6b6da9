"""Issue models returned to callers.

All models are frozen: they are built once per request and never mutated.
Enrichment produces a new Issue via ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from .enums import EnrichmentSection

class FrozenModel(BaseModel):
    """Base class for immutable issue models."""

    model_config = ConfigDict(frozen=True)


class Comment(FrozenModel):
    """A single issue comment."""

    id: str = Field(description="Comment ID")
    author: str = Field(default="", description="Author display name")
    body: str = Field(default="", description="Comment text")
    created: datetime | None = Field(default=None, description="When the comment was posted")
    updated: datetime | None = Field(default=None, description="Last edit timestamp")


class HistoryChange(FrozenModel):
    """One field change inside a changelog entry."""

    field: str = Field(description="Name of the changed field")
    field_type: str = Field(default="", description="Field type (jira, custom)")
    from_value: str = Field(default="", description="Value before the change")
    to_value: str = Field(default="", description="Value after the change")


class HistoryItem(FrozenModel):
    """A changelog entry: who changed what, and when."""

    id: str = Field(description="Changelog entry ID")
    author: str = Field(default="", description="Author display name")
    created: datetime | None = Field(default=None, description="When the change happened")
    changes: list[HistoryChange] = Field(
        default_factory=list, description="Field changes, in the order Jira reports them"
    )


class TimeTracking(FrozenModel):
    """Time tracking estimates as Jira formats them (e.g. '4h')."""

    original_estimate: str = ""
    remaining_estimate: str = ""
    time_spent: str = ""


class EnhancedFields(FrozenModel):
    """Extended fields fetched separately from the base issue."""

    labels: list[str] = Field(default_factory=list, description="Issue labels (unique)")
    components: list[str] = Field(default_factory=list, description="Component names (unique)")
    priority: str = ""
    issue_type: str = ""
    time_tracking: TimeTracking | None = None


class EnrichmentWarning(FrozenModel):
    """Something that was skipped or failed while enriching an issue."""

    section: EnrichmentSection
    message: str


class Issue(FrozenModel):
    """A Jira issue, optionally enriched with comments, history and extended fields.

    Base fields are always present. Each enrichment field is None unless
    its sub-fetch was permitted and succeeded; ``warnings`` explains why a
    field is missing.
    """

    # Base fields
    key: str = Field(description="Issue key (e.g. CNF-123)")
    summary: str = Field(default="", description="Issue summary")
    description: str | None = Field(default=None, description="Issue description")
    status: str = ""
    priority: str = ""
    issue_type: str = ""
    project: str = ""
    assignee: str | None = None
    reporter: str | None = None
    creator: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    resolved: datetime | None = None

    # Enrichment
    comments: list[Comment] | None = None
    history: list[HistoryItem] | None = None
    labels: list[str] | None = None
    components: list[str] | None = None
    time_tracking: TimeTracking | None = None

    warnings: list[EnrichmentWarning] = Field(default_factory=list)

    @property
    def is_enriched(self) -> bool:
        """Whether any enrichment field has been populated."""
        return any(
            value is not None
            for value in (
                self.comments,
                self.history,
                self.labels,
                self.components,
                self.time_tracking,
            )
        )

    def with_warning(self, section: EnrichmentSection, message: str) -> Self:
        """Copy of this issue with one more warning attached."""
        warning = EnrichmentWarning(section=section, message=message)
        return self.model_copy(update={"warnings": [*self.warnings, warning]})
