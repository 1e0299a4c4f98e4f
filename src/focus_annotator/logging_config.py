"""Logging configuration for focus-annotator.

Everything goes through loguru. Records from libraries that use the standard
``logging`` module (uvicorn, mcp) are forwarded so the service prints one
consistent stream.
"""

import logging
import os
import sys

from loguru import logger

LOG_LEVEL_ENV = "FOCUS_LOG_LEVEL"

# Libraries whose stdlib loggers are forwarded to loguru.
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "mcp")


class _InterceptHandler(logging.Handler):
    """Re-emit stdlib logging records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def resolve_level(verbose: bool) -> str:
    """``--verbose`` wins, then ``FOCUS_LOG_LEVEL``, then INFO."""
    if verbose:
        return "DEBUG"
    return os.environ.get(LOG_LEVEL_ENV, "").strip().upper() or "INFO"


def configure_logging(*, verbose: bool = False) -> None:
    """Configure loguru with appropriate level and take over library loggers."""
    logger.remove()
    level = resolve_level(verbose)
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")

    handler = _InterceptHandler()
    for name in FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False
