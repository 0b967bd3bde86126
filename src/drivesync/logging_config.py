"""structlog configuration shared by the library and the CLI."""

from __future__ import annotations

import logging
import os
import sys

import structlog

ENV_DEBUG = "DRIVESYNC_DEBUG"

_configured = False


def _debug_enabled() -> bool:
    return os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes", "on")


def configure_logging(debug: bool | None = None, force: bool = False) -> None:
    """Configure structlog for console output.

    Logs go to stderr so CLI output on stdout stays machine readable.
    Debug level is enabled by DRIVESYNC_DEBUG or the ``debug`` argument.
    """
    global _configured
    if _configured and not force:
        return

    if debug is None:
        debug = _debug_enabled()
    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Get a logger bound to a drivesync component name."""
    return structlog.get_logger(f"drivesync.{name}", component=name)
