"""Per-task logging context for batch workers.

Each worker thread runs a file inside ``task_context(slot, file_id, path)``;
TaskContextFilter copies the active context onto every record so that
interleaved output from concurrent encodes can be told apart.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class TaskContext:
    """Batch slot ("01"), file id ("F001") and source path of a running task."""

    task_id: str | None = None
    file_id: str | None = None
    file_path: str | None = None

    @property
    def tag(self) -> str:
        """Prefix for text log lines, e.g. ``"[T01:F001] "``."""
        if not self.task_id:
            return ""
        if self.file_id:
            return f"[T{self.task_id}:{self.file_id}] "
        return f"[T{self.task_id}] "


_EMPTY = TaskContext()
_current: contextvars.ContextVar[TaskContext] = contextvars.ContextVar(
    "transcoder_task", default=_EMPTY
)


def _make(task_id: str, file_id: str | None, file_path: Path | str | None) -> TaskContext:
    return TaskContext(task_id, file_id, None if file_path is None else str(file_path))


def set_task_context(
    task_id: str,
    file_id: str | None = None,
    file_path: Path | str | None = None,
) -> None:
    """Bind the calling thread to a batch task until cleared."""
    _current.set(_make(task_id, file_id, file_path))


def clear_task_context() -> None:
    _current.set(_EMPTY)


@contextmanager
def task_context(
    task_id: str,
    file_id: str | None = None,
    file_path: Path | str | None = None,
) -> Iterator[TaskContext]:
    """Run a block as a batch task; the previous context is restored on exit.

    Example:
        with task_context("01", "F001", "/videos/clip.mov"):
            logger.info("Transcoding")  # text format: "[T01:F001] ..."
    """
    ctx = _make(task_id, file_id, file_path)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def get_task_context() -> tuple[str | None, str | None, str | None]:
    """Return ``(task_id, file_id, file_path)`` of the active task."""
    ctx = _current.get()
    return ctx.task_id, ctx.file_id, ctx.file_path


class TaskContextFilter(logging.Filter):
    """Copy the active task onto records as task_id, file_id, file_path and task_tag."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _current.get()
        record.task_id = ctx.task_id
        record.file_id = ctx.file_id
        record.file_path = ctx.file_path
        record.task_tag = ctx.tag
        return True
