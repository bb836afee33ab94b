"""Structured logging setup shared by the API and the worker."""

from __future__ import annotations

import logging
from typing import cast

import structlog
from structlog import dev, processors, stdlib
from structlog.stdlib import BoundLogger

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def configure_logging(level: str = "info", json_output: bool = True, testing: bool = False) -> None:
    """Configure structlog on top of the stdlib root logger.

    Args:
        level: One of LOG_LEVELS; unknown names fall back to info.
        json_output: Render JSON lines (production) instead of console output.
        testing: Use key=value rendering so test output stays readable.
    """
    log_level = LOG_LEVELS.get((level or "").lower(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    shared_processors = [
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        processors.TimeStamper(fmt="iso", utc=True),
    ]

    if testing:
        renderer = processors.KeyValueRenderer(key_order=["event"])
    elif json_output:
        renderer = processors.JSONRenderer()
    else:
        renderer = dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *shared_processors,
            processors.format_exc_info,
            stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        cache_logger_on_first_use=not testing,
    )

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(
        stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = [handler]


def get_logger(name: str | None = None) -> BoundLogger:
    return cast(BoundLogger, structlog.get_logger(name))
