"""Jira API client module.

This module provides:
- JiraClient: Async Jira API client routed through the shared RateLimiter
- Rate limiting: RateLimiter and the process-wide default instance
- Permissions: Capability, IssuePermissions, check_permissions
- Enhanced context: EnhancedContextAggregator, BatchEnhancer
"""

from .batch import BatchEnhancer, BatchEnhanceResult, enhance_issues
from .client import JiraClient
from .enhanced_context import EnhancedContextAggregator, fetch_issue_with_enhanced_context
from .exceptions import (
    BaseFetchFailedError,
    JiraAPIError,
    JiraAuthenticationError,
    JiraClientError,
    JiraDecodeError,
    JiraNotFoundError,
    JiraRateLimitExhaustedError,
    JiraTransportError,
)
from .permissions import Capability, IssuePermissions, check_permissions
from .rate_limit import (
    RateLimiter,
    disable_rate_limiting,
    enable_rate_limiting,
    get_default_rate_limiter,
    set_default_rate_limiter,
    set_rate_limit_delay,
)

__all__ = [
    # Client
    "JiraClient",
    # Exceptions
    "BaseFetchFailedError",
    "JiraAPIError",
    "JiraAuthenticationError",
    "JiraClientError",
    "JiraDecodeError",
    "JiraNotFoundError",
    "JiraRateLimitExhaustedError",
    "JiraTransportError",
    # Rate limiting
    "RateLimiter",
    "disable_rate_limiting",
    "enable_rate_limiting",
    "get_default_rate_limiter",
    "set_default_rate_limiter",
    "set_rate_limit_delay",
    # Permissions
    "Capability",
    "IssuePermissions",
    "check_permissions",
    # Enhanced context
    "BatchEnhanceResult",
    "BatchEnhancer",
    "EnhancedContextAggregator",
    "enhance_issues",
    "fetch_issue_with_enhanced_context",
]
