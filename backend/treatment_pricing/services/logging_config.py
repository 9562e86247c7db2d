"""Structured logging configuration for the treatment pricing engine."""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

from treatment_pricing.config import LOG_FORMAT, LOG_LEVEL, LOGGER_PREFIX

# Structured extras passed via ``logger.info(..., extra={...})``
EXTRA_FIELDS = ("template_id", "treatment_category", "pricing_type", "total_cost", "duration_ms")


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = LOG_LEVEL, json_output: Optional[bool] = None):
    """Configure the engine's loggers; JSON unless LOG_FORMAT=text."""
    if json_output is None:
        json_output = LOG_FORMAT.lower() != "text"

    root = logging.getLogger(LOGGER_PREFIX)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]
    return root
