from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "docs_sync"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_LOGGING_CONFIGURED = False
_LOG_FILES: set[str] = set()


def _file_handler(filename: str | Path) -> logging.Handler:
    _LOG_FILES.add(str(filename))
    return logging.FileHandler(str(filename), encoding="utf-8")


def setup_logging(filename: str | Path | None = None, level: str | None = None) -> structlog.BoundLogger:
    """Set up JSON logging for sync runs.

    structlog renders every event to a JSON line handed to the stdlib root
    logger, whose level decides what is emitted. The first call picks the
    handler (stderr, or ``filename``). Later calls may add a log file given on
    the command line after the import-time setup, or change the level.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
        level: Optional level name among ``LOG_LEVELS``.

    Returns:
        A structlog logger named after the package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        handler = _file_handler(filename) if filename else logging.StreamHandler(sys.stderr)
        logging.basicConfig(level=logging.INFO, handlers=[handler], format="%(message)s")
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True
    elif filename and str(filename) not in _LOG_FILES:
        logging.getLogger().addHandler(_file_handler(filename))

    if level:
        logging.getLogger().setLevel(level.upper())
    return structlog.get_logger(LOGGER_NAME)


logger = setup_logging()
