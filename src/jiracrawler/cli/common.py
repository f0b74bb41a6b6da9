"""Common CLI option types and helpers.

This module centralizes reusable CLI options and output handling:
- `run_async_command`: Unified async execution with error handling
- `print_output`: JSON/YAML rendering of issue models to stdout
- `CLIState`: global flags shared with subcommands via the typer context
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar

import typer
import yaml
from pydantic import BaseModel
from rich.console import Console

from jiracrawler.schemas.enums import OutputFormat

# Shared console instance for status output (stderr keeps stdout parseable)
console = Console(stderr=True)

T = TypeVar("T")


@dataclass
class CLIState:
    """Global options, stored on the typer context by the app callback."""

    verbose: bool = False


def get_state(ctx: typer.Context) -> CLIState:
    """Global options for a command (defaults when run without the app callback)."""
    return ctx.obj if isinstance(ctx.obj, CLIState) else CLIState()


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command with unified error handling.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--output",
        "-o",
        help="Output format",
        case_sensitive=False,
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.JSON):
"""

EnhancedOption = Annotated[
    bool,
    typer.Option(
        "--enhanced",
        "-e",
        help="Fetch comments, history and extended fields for every issue",
    ),
]
"""Opt-in enhanced context for list commands."""


def to_data(value: Any) -> Any:
    """Convert models, and lists or mappings of them, to JSON-compatible data.

    Unset enrichment fields are dropped so base-only issues stay compact.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, dict):
        return {key: to_data(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_data(item) for item in value]
    return value


def render(data: Any, output_format: OutputFormat) -> str:
    """Serialize JSON-compatible data in the requested format."""
    if output_format == OutputFormat.YAML:
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


def print_output(value: Any, output_format: OutputFormat) -> None:
    """Write models (or plain data holding them) to stdout."""
    typer.echo(render(to_data(value), output_format).rstrip("\n"))
