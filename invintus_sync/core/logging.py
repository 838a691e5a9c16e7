"""Invintus Sync - Structured JSON Logging.

One JSON object per line on stdout. Context passed through ``extra=`` is
copied onto the line when its key is one of EXTRA_FIELDS.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from invintus_sync.config import settings

ROOT_LOGGER = "invintus_sync"
EXTRA_FIELDS = ("event_id", "action", "record_id", "operation", "status_code")


class JSONFormatter(logging.Formatter):
    """Renders a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level() -> int:
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return ``invintus_sync.<name>``; the stdout handler lives on the package root."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
        root.setLevel(_level())
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
