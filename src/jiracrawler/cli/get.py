"""Issue retrieval commands."""

from typing import Any

import typer
from rich.progress import BarColumn, Progress, TextColumn

from jiracrawler.cli.common import (
    EnhancedOption,
    OutputFormatOption,
    console,
    get_state,
    print_output,
    run_async_command,
    to_data,
)
from jiracrawler.config import get_settings
from jiracrawler.jira import (
    BatchEnhancer,
    EnhancedContextAggregator,
    JiraClient,
    JiraClientError,
)
from jiracrawler.jira.jql import assigned_issues_jql, updated_in_range_jql
from jiracrawler.logging import LogContext, get_logger
from jiracrawler.schemas import Issue, OutputFormat

logger = get_logger(__name__)

app = typer.Typer(help="Get Jira data")


async def _enhance_with_progress(
    client: JiraClient,
    issues: list[Issue],
    verbose: bool,
) -> list[Issue]:
    """Batch-enhance issues, showing a progress bar on the console."""
    if not issues:
        return issues

    with Progress(
        TextColumn("[bold]Enhancing issues"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("enhance", total=len(issues))

        def _on_progress(completed: int, total: int, issue: Issue) -> None:
            progress.update(task, completed=completed)

        enhancer = BatchEnhancer(EnhancedContextAggregator(client), on_progress=_on_progress)
        result = await enhancer.enhance(issues, verbose=verbose)

    if not result.all_succeeded:
        console.print(
            f"[yellow]Warning:[/yellow] {result.failure_count} of {result.total_count} "
            "issues could not be enhanced"
        )
    return result.issues


@app.command("issue")
def get_issue(
    ctx: typer.Context,
    key: str = typer.Argument(help="Issue key (e.g., CNF-123)"),
    output_format: OutputFormatOption = OutputFormat.JSON,
    enhanced: bool = typer.Option(
        True,
        "--enhanced/--no-enhanced",
        help="Include comments, history and extended fields",
    ),
) -> None:
    """Get a single issue, with enhanced context by default.

    Examples:
        jiracrawler get issue CNF-123
        jiracrawler get issue CNF-123 --output yaml
        jiracrawler get issue CNF-123 --no-enhanced
    """
    verbose = get_state(ctx).verbose

    async def _get() -> Issue:
        async with JiraClient() as client:
            if not enhanced:
                return await client.get_issue(key)
            return await EnhancedContextAggregator(client).fetch_enriched(key, verbose=verbose)

    issue = run_async_command(_get(), error_prefix=f"Failed to fetch {key}")
    if enhanced and not issue.is_enriched:
        console.print(f"[yellow]Warning:[/yellow] no enhanced context available for {key}")
    print_output(issue, output_format)


@app.command("assigned")
def get_assigned(
    ctx: typer.Context,
    users: list[str] | None = typer.Argument(None, help="Jira usernames (defaults to JIRA_USER)"),
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Jira project key (defaults to JIRA_PROJECT)",
    ),
    output_format: OutputFormatOption = OutputFormat.JSON,
    enhanced: EnhancedOption = False,
) -> None:
    """Get the issues assigned to one or more users.

    A failed search for one user is reported and skipped. Without users,
    the configured JIRA_USER is used.

    Examples:
        jiracrawler get assigned jdoe
        jiracrawler get assigned jdoe asmith --project CNF --enhanced
    """
    verbose = get_state(ctx).verbose
    settings = get_settings()
    project_key = project or settings.jira_project
    if not users:
        if not settings.jira_user:
            console.print("[red]Error:[/red] give at least one user or set JIRA_USER")
            raise typer.Exit(1)
        users = [settings.jira_user]

    async def _get() -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        async with JiraClient() as client:
            for user in users:
                with LogContext(user=user):
                    try:
                        issues = await client.search_issues(assigned_issues_jql(project_key, user))
                    except JiraClientError as e:
                        logger.warning("Error fetching issues for {}: {}", user, e)
                        console.print(f"[yellow]Warning:[/yellow] skipping {user}: {e}")
                        continue

                    if enhanced:
                        issues = await _enhance_with_progress(client, issues, verbose)
                results.append({"user": user, "issues": to_data(issues)})
        return results

    results = run_async_command(_get(), error_prefix="Search failed")
    print_output(results, output_format)


@app.command("updated")
def get_updated(
    ctx: typer.Context,
    assignee: str = typer.Argument(help="Jira username"),
    start: str = typer.Option(..., "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", help="End date (YYYY-MM-DD)"),
    output_format: OutputFormatOption = OutputFormat.JSON,
    enhanced: EnhancedOption = False,
) -> None:
    """Get issues assigned to a user and updated within a date range.

    Examples:
        jiracrawler get updated jdoe --start 2024-01-01 --end 2024-01-31
    """
    verbose = get_state(ctx).verbose
    try:
        jql = updated_in_range_jql(assignee, start, end)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    async def _get() -> list[Issue]:
        async with JiraClient() as client:
            issues = await client.search_issues(jql)
            if enhanced:
                issues = await _enhance_with_progress(client, issues, verbose)
            return issues

    issues = run_async_command(_get(), error_prefix="Search failed")
    result = {
        "user": assignee,
        "date_range": f"{start} to {end}",
        "total_count": len(issues),
        "issues": issues,
    }
    print_output([result], output_format)
