"""Structured logging setup shared by the CLI and library callers.

Engine modules log through ``logging.getLogger(__name__)``; this routes them,
and any structlog loggers, to stderr (stdout stays free for CLI tables) and to
``logs/bulkrecon.log`` when that directory exists.
"""

import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

LOG_FILE = Path("logs/bulkrecon.log")


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


def configure_logging(level: str | None = None, log_format: LogFormat | str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Root level name; falls back to LOG_LEVEL, then INFO
        log_format: "text" or "json"; falls back to LOG_FORMAT, then text.
            JSON_LOGS=true still forces JSON.

    Raises:
        ValueError: If the format or level name is unknown
    """
    if isinstance(log_format, LogFormat):
        fmt = log_format
    else:
        fmt = LogFormat((log_format or os.getenv("LOG_FORMAT", "text")).lower())
    if os.getenv("JSON_LOGS", "false").lower() == "true":
        fmt = LogFormat.JSON

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if not isinstance(logging.getLevelName(level_name), int):
        raise ValueError(f"Unknown log level: {level_name}")

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer() if fmt is LogFormat.JSON else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level_name)
