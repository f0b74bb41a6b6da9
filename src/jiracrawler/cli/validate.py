"""Credential check command."""

import typer

from jiracrawler.cli.common import console, run_async_command
from jiracrawler.config import get_settings
from jiracrawler.jira import JiraAuthenticationError, JiraClient


def validate() -> None:
    """Check that the configured Jira token is accepted.

    Examples:
        jiracrawler validate
    """

    async def _validate() -> None:
        settings = get_settings()
        if not settings.jira_token:
            console.print("[red]Error:[/red] JIRA_TOKEN not set in environment")
            raise typer.Exit(1)

        try:
            async with JiraClient() as client:
                console.print(f"[bold]Checking credentials against {client.base_url}...[/bold]")
                user = await client.get_myself()
        except JiraAuthenticationError:
            console.print("[red]Error:[/red] Invalid Jira token")
            raise typer.Exit(1) from None

        name = user.get("displayName") or user.get("name") or "unknown user"
        console.print(f"[green]Authenticated as {name}[/green]")

    run_async_command(_validate(), error_prefix="Validation failed")
