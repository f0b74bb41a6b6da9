"""Jira client exceptions."""


class JiraClientError(Exception):
    """Base exception for Jira client errors."""

    pass


class JiraTransportError(JiraClientError):
    """Raised when the request never produced a response.

    Connection refused, DNS failure, connect/read timeouts and the like.
    These are fatal and are never retried.
    """

    pass


class JiraRateLimitExhaustedError(JiraClientError):
    """Raised when Jira keeps answering 429 after the retry budget is spent."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class JiraAPIError(JiraClientError):
    """Raised when Jira answers with an unexpected (non-200) status."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class JiraAuthenticationError(JiraClientError):
    """Raised when no token is configured or Jira rejects it (401)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JiraNotFoundError(JiraAPIError):
    """Raised when a resource is not found (404)."""

    pass


class JiraDecodeError(JiraClientError):
    """Raised when a response body is not the JSON shape we expect."""

    pass


class BaseFetchFailedError(JiraClientError):
    """Raised when the base issue itself could not be fetched.

    This is the only failure that aborts an enhanced context fetch.
    """

    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.key = key
