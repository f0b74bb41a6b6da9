"""Logging setup for jiracrawler, built on loguru.

Console logs go to stderr so that JSON/YAML written to stdout by the CLI
stays machine readable. Records from the standard library (httpx, httpcore)
are routed through loguru as well.

Usage:
    from jiracrawler.logging import get_logger, setup_logging

    setup_logging(level="INFO", verbose=True)
    logger = get_logger(__name__)
    logger.info("Fetching {}", "CNF-123")
"""

from __future__ import annotations

import inspect
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Chatty third-party loggers, only shown when we run at DEBUG ourselves
NOISY_LOGGERS = ("httpx", "httpcore")

_configured = False


def _console_format(record: Record) -> str:
    """Format for stderr: time, level, logger name and, if bound, the issue key."""
    name = "{extra[name]}" if "name" in record["extra"] else "{name}"
    issue = " <magenta>[{extra[issue]}]</magenta>" if "issue" in record["extra"] else ""
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{name}</cyan>{issue} - <level>{{message}}</level>\n{{exception}}"
    )


_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} | {extra} | {message}"
)


def _effective_level(level: LogLevel, verbose: bool, quiet: bool) -> LogLevel:
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


class InterceptHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(name=record.name).log(
            level, record.getMessage()
        )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure loguru sinks for the application.

    Args:
        level: Base log level from config
        verbose: Force DEBUG (wins over quiet)
        quiet: Force WARNING
        log_file: Optional file sink; always records DEBUG and up
        rotation: When to rotate the log file (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept
        serialize: Write the file sink as JSON lines

    Returns:
        The configured loguru logger
    """
    global _configured

    effective = _effective_level(level, verbose, quiet)

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    library_level = logging.DEBUG if effective in ("TRACE", "DEBUG") else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    _configured = True
    return logger


def get_logger(name: str) -> Logger:
    """Logger with ``name`` bound, typically ``get_logger(__name__)``."""
    return logger.bind(name=name)


def bind_issue(issue_key: str, name: str = "jiracrawler") -> Logger:
    """Logger carrying the issue key, shown next to the logger name on the console.

    Args:
        issue_key: Jira issue key (e.g. CNF-123)
        name: Logger name to bind alongside the issue
    """
    return logger.bind(name=name, issue=issue_key)


class LogContext:
    """Bind extra values to every record logged inside a ``with`` block.

    Unlike ``bind``, this also reaches loggers created elsewhere, because
    loguru stores the values in a context variable.

    Usage:
        with LogContext(issue="CNF-123"):
            logger.info("Processing")  # carries issue=CNF-123
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._manager: Any = None

    def __enter__(self) -> Logger:
        self._manager = logger.contextualize(**self._context)
        self._manager.__enter__()
        return logger

    def __exit__(self, *exc_info: Any) -> None:
        if self._manager is not None:
            self._manager.__exit__(*exc_info)
            self._manager = None


def is_configured() -> bool:
    """Whether setup_logging has run since the last reset."""
    return _configured


def reset_logging() -> None:
    """Remove every sink and mark logging unconfigured (used by tests)."""
    global _configured
    logger.remove()
    _configured = False
