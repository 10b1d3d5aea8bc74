"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


# Context keys bound for one CLI invocation.
RUN_CONTEXT_KEYS = ("run_id", "command")


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the exporter.

    Log lines go to stderr by default so that commands printing JSON
    polling responses on stdout stay machine-readable. httpx's own request
    lines are held back to WARNING; uploads are logged as
    ``artifact_uploaded`` events instead.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_format
        else structlog.dev.ConsoleRenderer(colors=output.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def bind_run_context(run_id: str, command: str | None = None) -> None:
    """Bind the invocation's run id (and command name) to every log line.

    Args:
        run_id: Identifier of the CLI invocation.
        command: Name of the subcommand being run, if known.
    """
    context = {"run_id": run_id}
    if command:
        context["command"] = command
    structlog.contextvars.bind_contextvars(**context)


def clear_run_context() -> None:
    """Remove the invocation context bound by ``bind_run_context``."""
    structlog.contextvars.unbind_contextvars(*RUN_CONTEXT_KEYS)
