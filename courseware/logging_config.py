"""JSON line logging for the courseware API.

Call ``configure_logging()`` once at startup. Log calls attach ids through
``extra={...}``; only the names in ``CONTEXT_FIELDS`` are copied into the
output line.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

LOG_LEVEL_ENV = "CW_LOG_LEVEL"

# Output order is fixed so lines diff cleanly.
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "credential_id",
    "presenter_id",
    "record_id",
    "course_id",
    "lecture_id",
    "teacher_id",
    "storage_key",
    "migration_id",
    "error",
)


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        # Tracebacks only for failures; warnings stay one short line.
        if record.exc_info and record.levelno >= logging.ERROR:
            entry["stack_trace"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level_from_env(default: int) -> int:
    raw = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(raw) if raw else default
    return level if isinstance(level, int) else default


def configure_logging(level: int = logging.INFO) -> None:
    """Route every logger through one stdout handler with ``JsonLogFormatter``.

    ``CW_LOG_LEVEL`` (e.g. ``DEBUG``) overrides ``level``. Repeated calls
    replace the handler instead of stacking another.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level_from_env(level))
