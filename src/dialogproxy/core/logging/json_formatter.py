from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone

from .context import get_log_context

SERVICE_NAME = "dialogproxy"


def _exception_fields(record: logging.LogRecord) -> dict[str, object]:
    if not record.exc_info:
        return {}
    exc_type, exc_value, exc_tb = record.exc_info
    return {
        "exc_type": exc_type.__name__ if exc_type else "Exception",
        "exc_msg": str(exc_value) if exc_value else "",
        "stack": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; request context and ``extra_fields`` are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, object] = {
            "ts_iso_utc": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(get_log_context())

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            for key, value in extra_fields.items():
                payload.setdefault(key, value)

        payload.update(_exception_fields(record))
        # Backend payloads can carry arbitrary objects; never fail a log line on them.
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
