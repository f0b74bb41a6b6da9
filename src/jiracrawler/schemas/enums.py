"""Enums for Pydantic schemas."""

from enum import Enum


class EnrichmentSection(str, Enum):
    """Part of an enhanced context fetch that a warning refers to."""

    PERMISSIONS = "permissions"
    """The permission probe (failed or denied access)."""

    COMMENTS = "comments"
    """The comments sub-resource."""

    HISTORY = "history"
    """The changelog (issue history)."""

    FIELDS = "fields"
    """Extended fields (labels, components, time tracking)."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    JSON = "json"
    """Indented JSON output."""

    YAML = "yaml"
    """YAML output."""
