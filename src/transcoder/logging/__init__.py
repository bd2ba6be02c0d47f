"""Logging setup: text or JSON output, log rotation and per-task tags."""

from transcoder.logging.config import configure_logging
from transcoder.logging.context import (
    TaskContext,
    TaskContextFilter,
    clear_task_context,
    get_task_context,
    set_task_context,
    task_context,
)
from transcoder.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "TaskContext",
    "TaskContextFilter",
    "clear_task_context",
    "configure_logging",
    "get_task_context",
    "set_task_context",
    "task_context",
]
