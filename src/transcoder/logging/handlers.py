"""JSON log formatting.

One JSON object per line, so a batch log can be filtered per task with
tools like jq (``select(.task.file_id == "F003")``).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Set by TaskContextFilter
_TASK_FIELDS = ("task_id", "file_id", "file_path")
_FILTER_ATTRS = frozenset(_TASK_FIELDS) | {"task_tag"}

# Tool stderr can run to megabytes; entries keep the head.
MAX_VALUE_LENGTH = 2000


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects.

    Keys: ``timestamp`` (UTC, ISO-8601 with milliseconds), ``level``,
    ``logger``, ``message``; then, when present, ``task`` (batch slot,
    file id and path), ``context`` (fields passed with ``extra=``) and
    ``exception``.
    """

    def __init__(self, max_value_length: int = MAX_VALUE_LENGTH) -> None:
        super().__init__()
        self.max_value_length = max_value_length

    def _clip(self, value: Any) -> Any:
        if isinstance(value, str) and len(value) > self.max_value_length:
            return value[: self.max_value_length] + "..."
        return value

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        task = {}
        for name in _TASK_FIELDS:
            value = getattr(record, name, None)
            if value:
                task[name] = value
        if task:
            entry["task"] = task

        context = {
            key: self._clip(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in _FILTER_ATTRS
            and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
