"""
Structured logging utilities for devstats.

Stores, the aggregation service and the CLI all log through standard library
loggers and attach context with ``extra=`` (table, path, interval bounds...).
Both formatters keep that context: the console one appends it as
``key=value`` pairs, the JSON one promotes it to top-level keys.

Usage:
    from devstats.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("Interval anonymized", extra={"source": "KeypressData", "aggregates": 1})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Context attached to ``record`` through ``extra=``, in insertion order."""
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with any extra context appended."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = extra_fields(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record; extra context becomes top-level keys."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name, case-insensitive (e.g. "debug", "WARNING").
    json_logs : bool
        Whether to emit one JSON object per line instead of console lines.
    """
    level = level.upper()
    logging.config.dictConfig(
        {
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
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "extra_fields", "get_logger"]
