"""Structured logging for pgprecheck.

The report owns stdout, so log events go to stderr unless configured
otherwise. Connection context (host, port, user) is bound once per run
through contextvars and merged into every event.
"""

import logging
import sys
from typing import Any, TextIO

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderer_chain(format: str) -> list[Any]:
    if format == "json":
        return [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=False)]


def _stream_for(output: str) -> TextIO:
    return sys.stdout if output == "stdout" else sys.stderr


def setup_logging(level: str = "WARNING", format: str = "console", output: str = "stderr") -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name; unknown names fall back to WARNING
        format: "json" or "console"
        output: "stdout" or "stderr"
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    stream = _stream_for(output)

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, *_renderer_chain(format)],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name, usually the module's __name__

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def bind_run_context(**context: Any) -> None:
    """Attach run-wide fields (never credentials) to every later log event."""
    structlog.contextvars.bind_contextvars(**context)


def clear_run_context() -> None:
    """Drop fields bound with bind_run_context."""
    structlog.contextvars.clear_contextvars()


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log an error with structured context.

    Args:
        logger: Logger instance
        error: Exception instance
        operation: Operation name (optional)
        **kwargs: Additional context fields
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }

    if operation:
        context["operation"] = operation

    logger.error("error_occurred", **context)
