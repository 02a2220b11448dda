"""Structured logging configuration (JSON or text format)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import LoggingConfig

# Structured fields attached to discovery records; pass them via log_fields()
STRUCTURED_FIELDS = ("action", "pages", "zones", "total_targets", "elapsed_seconds", "path")

QUIET_LOGGERS = ("botocore", "boto3", "urllib3")


def log_fields(**values: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a record, rejecting unknown field names."""
    unknown = sorted(set(values) - set(STRUCTURED_FIELDS))
    if unknown:
        raise TypeError(f"Unknown structured log fields: {', '.join(unknown)}")
    return values


def _structured_values(record: logging.LogRecord) -> dict[str, Any]:
    values = {}
    for key in STRUCTURED_FIELDS:
        val = getattr(record, key, None)
        if val is not None:
            values[key] = val
    return values


class JSONFormatter(logging.Formatter):
    """Emits log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_structured_values(record))

        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development, with structured fields as key=value."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = _structured_values(record)
        if fields:
            line += " " + " ".join(f"{key}={val}" for key, val in fields.items())
        return line


def configure_logging(config: LoggingConfig) -> None:
    """Set up the root logger based on configuration."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if config.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
