"""Main CLI application for jiracrawler."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from jiracrawler import __version__
from jiracrawler.cli import config as config_cmd
from jiracrawler.cli import get as get_cmd
from jiracrawler.cli.common import CLIState
from jiracrawler.cli.validate import validate
from jiracrawler.config import RateLimitConfig, get_settings
from jiracrawler.jira.rate_limit import RateLimiter, set_default_rate_limiter
from jiracrawler.logging import get_logger, setup_logging

app = typer.Typer(
    name="jiracrawler",
    help="Fetch Jira issues with comments, history and extended fields.",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)


def _rate_limit_config(
    base: RateLimitConfig,
    delay_ms: int | None,
    max_retries: int | None,
    disabled: bool,
) -> RateLimitConfig:
    """Apply command-line overrides on top of the configured limiter settings."""
    overrides: dict[str, object] = {}
    if delay_ms is not None:
        overrides["delay_ms"] = delay_ms
    if max_retries is not None:
        overrides["max_retries"] = max_retries
    if disabled:
        overrides["enabled"] = False
    return base.model_copy(update=overrides)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"jiracrawler version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging and per-step fetch progress.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
    rate_limit_delay: Annotated[
        int | None,
        typer.Option(
            "--rate-limit-delay",
            help="Delay between Jira requests in milliseconds.",
            min=0,
        ),
    ] = None,
    max_retries: Annotated[
        int | None,
        typer.Option(
            "--max-retries",
            help="Retries after HTTP 429 before giving up.",
            min=0,
        ),
    ] = None,
    no_rate_limit: Annotated[
        bool,
        typer.Option(
            "--no-rate-limit",
            help="Disable the per-request delay (429 retries still apply).",
        ),
    ] = False,
) -> None:
    """jiracrawler - Resilient Jira issue fetching."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )

    # Every client the subcommands create shares this limiter
    config = _rate_limit_config(settings.rate_limit, rate_limit_delay, max_retries, no_rate_limit)
    limiter = RateLimiter.from_config(config)
    set_default_rate_limiter(limiter)
    logger.debug("Rate limiter settings: {}", limiter.to_dict())

    ctx.obj = CLIState(verbose=verbose)


# Register subcommands
app.command("validate")(validate)
app.add_typer(config_cmd.app, name="config")
app.add_typer(get_cmd.app, name="get")


if __name__ == "__main__":
    app()
