from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False


def setup_logging(filename: str | Path | None = None, *, verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Set up structured logging for the dir2file package.

    Configuration happens once per process; later calls only hand back a logger.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
        verbose: Lower the threshold to DEBUG so every selection decision is logged.

    Returns:
        A structlog logger instance configured for the dir2file package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        level = logging.DEBUG if verbose else logging.INFO
        handlers: list[logging.Handler] = []
        if filename:
            handlers.append(logging.FileHandler(str(filename), encoding="utf-8"))
        else:
            handlers.append(logging.StreamHandler(sys.stderr))

        logging.basicConfig(
            level=level,
            handlers=handlers,
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("dir2file")


def get_logger(component: str, logger: structlog.stdlib.BoundLogger | None = None) -> structlog.stdlib.BoundLogger:
    """Bind a component name on an injected logger.

    Args:
        component: Name of the component emitting the events.
        logger: Logger handed down by the caller; a fresh structlog logger when None.

    Returns:
        A logger carrying ``component`` in its context.
    """
    base = logger if logger is not None else structlog.get_logger("dir2file")
    return base.bind(component=component)
