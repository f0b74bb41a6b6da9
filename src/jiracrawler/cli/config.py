"""Persistent configuration commands."""

import typer

from jiracrawler.cli.common import console
from jiracrawler.config import config_file_path, set_config_value

app = typer.Typer(help="Manage configuration")


@app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. jira_url or rate_limit.delay_ms"),
    value: str = typer.Argument(help="New value"),
) -> None:
    """Store a setting in the config file.

    Environment variables and .env still take precedence over the file.

    Examples:
        jiracrawler config set jira_url https://issues.example.com
        jiracrawler config set rate_limit.delay_ms 250
    """
    path = config_file_path()
    try:
        set_config_value(key, value, path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"Set {key} in {path}")


@app.command("path")
def config_path() -> None:
    """Print the location of the config file."""
    typer.echo(str(config_file_path()))
