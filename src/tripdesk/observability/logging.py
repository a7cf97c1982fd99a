"""JSON-lines logging to stdout.

Each record becomes one JSON object: timestamp, level, logger, message,
correlationId (inside a request), exception (if any) and whatever the caller
passed as extra={"extra_fields": {...}}. Callers are expected to build
extra_fields with safe_log_context() so guest contact data never lands here.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

_DEFAULT_LEVEL = "INFO"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlationId"] = correlation_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(getattr(record, "extra_fields", None) or {})

        # Decimal amounts, dates and the like
        return json.dumps(entry, default=str)


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", _DEFAULT_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return *name*'s logger, attaching the JSON stdout handler on first use.

    The level comes from LOG_LEVEL (default INFO). Configured loggers do not
    propagate, so records are written exactly once.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        logger.propagate = False

    return logger
