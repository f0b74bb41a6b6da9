"""Sequential batch enhancement of previously fetched issues.

Issues are enhanced one at a time with a fixed pause between them. The
pause does not go through the shared RateLimiter.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from jiracrawler.config import get_settings
from jiracrawler.logging import get_logger
from jiracrawler.schemas.issue import Issue

from .enhanced_context import EnhancedContextAggregator

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, Issue], None]
"""Called after each issue as (completed, total, issue)."""


@dataclass
class BatchEnhanceResult:
    """Result of a batch enhancement.

    ``issues`` always has the same length and order as the input.
    """

    issues: list[Issue] = field(default_factory=list)
    failed: list[tuple[int, Exception]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Total number of issues processed."""
        return len(self.issues)

    @property
    def success_count(self) -> int:
        """Number of issues that were enhanced."""
        return len(self.issues) - len(self.failed)

    @property
    def failure_count(self) -> int:
        """Number of issues left in their original form."""
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        """Whether every issue was enhanced."""
        return len(self.failed) == 0


class BatchEnhancer:
    """Enhances a list of issues sequentially.

    Usage:
        async with JiraClient() as client:
            issues = await client.search_issues('assignee="jdoe"')
            enhancer = BatchEnhancer(EnhancedContextAggregator(client))
            result = await enhancer.enhance(issues)

            print(f"Enhanced {result.success_count}/{result.total_count} issues")
    """

    def __init__(
        self,
        aggregator: EnhancedContextAggregator,
        delay: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the batch enhancer.

        Args:
            aggregator: Aggregator used for each issue
            delay: Seconds to pause between issues (defaults to settings)
            on_progress: Optional callback invoked after each issue
        """
        self._aggregator = aggregator
        self._delay = get_settings().enhance.batch_delay_seconds if delay is None else delay
        self._on_progress = on_progress

    @property
    def delay(self) -> float:
        """Pause between consecutive issues, in seconds."""
        return self._delay

    async def enhance(self, issues: Sequence[Issue], verbose: bool = False) -> BatchEnhanceResult:
        """Enhance every issue, keeping the original on failure.

        Args:
            issues: Issues with base fields (e.g. from a search)
            verbose: Passed through to the aggregator

        Returns:
            BatchEnhanceResult with issues in input order
        """
        result = BatchEnhanceResult()
        total = len(issues)

        for index, issue in enumerate(issues):
            try:
                enhanced = await self._aggregator.fetch_enriched(issue.key, verbose=verbose)
            except Exception as e:
                logger.warning("failed to enhance issue {}: {}", issue.key, e)
                result.failed.append((index, e))
                enhanced = issue

            result.issues.append(enhanced)
            if self._on_progress:
                self._on_progress(index + 1, total, enhanced)

            if index < total - 1 and self._delay > 0:
                await asyncio.sleep(self._delay)

        if result.failed:
            logger.info(
                "Enhanced {}/{} issues ({} left unenhanced)",
                result.success_count,
                result.total_count,
                result.failure_count,
            )
        return result


async def enhance_issues(
    aggregator: EnhancedContextAggregator,
    issues: Sequence[Issue],
    *,
    delay: float | None = None,
    verbose: bool = False,
) -> list[Issue]:
    """Convenience function returning just the (possibly enhanced) issues."""
    result = await BatchEnhancer(aggregator, delay=delay).enhance(issues, verbose=verbose)
    return result.issues
