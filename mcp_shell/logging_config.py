"""
Centralized logging configuration for mcp-shell.

Call ``setup_logging()`` once from the entry point (``mcp_shell.__main__``).
Every other module should just do::

    import logging
    logger = logging.getLogger(__name__)

The MCP stdio transport owns *stdout*, so logs default to *stderr*.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from mcp_shell.config.settings import LoggingConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        audit = getattr(record, "audit", None)
        if audit:
            entry["audit"] = audit
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _use_color(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    term = os.getenv("TERM", "")
    if term == "dumb" or "color" not in term:
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class _ConsoleFormatter(logging.Formatter):
    """Human-readable single-line records, colored on capable terminals."""

    _COLORS = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def __init__(self, color: bool = False):
        super().__init__(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if self.color:
            return f"{self._COLORS.get(record.levelno, '')}{text}\033[0m"
        return text


def resolve_level(level: str) -> int:
    return _LEVELS.get(level.lower(), logging.INFO)


def setup_logging(config: Optional[LoggingConfig] = None, *, level: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    config:
        Logging section of the application config. Defaults apply when omitted.
    level:
        Level name overriding ``config.level`` (debug, info, warn, error, fatal).
    """
    config = config or LoggingConfig()
    resolved_level = resolve_level(level or config.level)

    # "file" output is not implemented yet and falls back to stderr
    stream = sys.stdout if config.output == "stdout" else sys.stderr

    if config.format == "json":
        formatter: logging.Formatter = _JSONFormatter()
    else:
        formatter = _ConsoleFormatter(color=_use_color(stream))

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved_level)
