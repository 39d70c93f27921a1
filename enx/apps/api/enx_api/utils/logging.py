"""Structured JSON logging for the admin API.

One JSON object per line, ready for log aggregation. Every line carries the
request id and the acting admin's id when a request is being served, and any
``extra={...}`` fields after they pass through the sanitizer.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from enx_api.context import actor_id_var, request_id_var
from enx_api.utils.sanitize import sanitize_exc, sanitize_obj, sanitize_str

# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

_CONTEXT_FIELDS: tuple[tuple[str, ContextVar[str]], ...] = (
    ("request_id", request_id_var),
    ("actor_id", actor_id_var),
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter with request context.

    Fields: timestamp (ISO 8601 UTC), level, message, module, func, line,
    request_id / actor_id (when set), exc_info (sanitized traceback), then
    the record's extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": sanitize_str(record.getMessage()),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for field, var in _CONTEXT_FIELDS:
            value = var.get()
            if value:
                payload[field] = value

        if record.exc_info:
            payload["exc_info"] = sanitize_exc(record.exc_info)

        payload.update(
            (key, sanitize_obj(value))
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        )

        return json.dumps(payload, default=str)


def configure_json_logging(log_level: str = "INFO") -> None:
    """Replace the root logger's handlers with a single JSON stream handler.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)
