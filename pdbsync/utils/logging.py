"""
Logging setup shared by the CLI and the synchronization engine.

Every engine module logs through ``get_logger(__name__)`` with a bracketed
event tag in the message (``[SYNC START]``, ``[FETCH]``, ``[APPLY]``,
``[SYNC COMMIT]``, ``[SYNC ABORTED]``) and its context in ``extra``. The
console formatter appends the context fields as ``key=value`` pairs; the JSON
formatter writes one object per line with the fields promoted to top level.

Usage:
    from pdbsync.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("[APPLY] ix: 10 written", extra={"table": "ix", "inserted": 10})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed via ``extra``, including a nested ``extra={"extra": {...}}``."""
    fields = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    return fields


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(_context(record))
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human-readable line followed by the record's context fields."""

    def __init__(self) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {k: v for k, v in _context(record).items() if v is not None}
        if not fields:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, tail = line.partition("\n")
        return f"{head} | {suffix}{sep}{tail}"


def _logging_config(level: str, json_logs: bool) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"()": ConsoleFormatter},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "loggers": {
            # httpx logs every request at INFO; the fetcher already does.
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging for a CLI run.

    Parameters
    ----------
    level : str
        Logging level name, case-insensitive (e.g., "debug", "INFO").
    json_logs : bool
        Emit one JSON object per line instead of the console format.
    """
    logging.config.dictConfig(_logging_config(level.upper(), json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name``; the root logger when None."""
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "get_logger"]
