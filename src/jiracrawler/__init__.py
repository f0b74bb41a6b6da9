"""jiracrawler - resilient Jira issue crawler with enhanced context."""

__version__ = "0.1.0"
