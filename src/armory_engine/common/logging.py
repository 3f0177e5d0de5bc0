"""Structured JSON logging for Armory-Engine.

Transaction outcomes carry ``transaction`` and ``code`` as record extras so
rollbacks can be grouped by workflow step and error code downstream.
"""

import logging
import json
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ("transaction", "code", "actor_id", "entity_id")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any context extras attached."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info and record.exc_info[1]:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Attach the JSON handler to the ``armory_engine`` logger tree once."""
    root = logging.getLogger("armory_engine")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    root.propagate = False
