"""Root logger setup from the ``[logging]`` config section."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from transcoder.logging.context import TaskContextFilter
from transcoder.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from transcoder.config.models import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(task_tag)s%(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _formatter(kind: str) -> logging.Formatter:
    if kind.lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _file_handler(config: LoggingConfig) -> logging.Handler | None:
    """Open the rotating log file, or return None if it cannot be created."""
    path = Path(config.file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Logging is not up yet; tell the user directly and keep stderr.
        print(f"Warning: cannot write log file {path}: {e}", file=sys.stderr)
        return None


def configure_logging(config: LoggingConfig) -> None:
    """Replace the root logger's handlers according to ``config``.

    Records go to the configured file (rotated at ``max_bytes``) and to
    stderr when ``include_stderr`` is set. Stderr is always used when no
    file is configured or the file cannot be opened. Every handler gets
    the task context filter, so batch output is tagged per file.
    """
    level = _level(config.level)
    handlers: list[logging.Handler] = []

    if config.file:
        file_handler = _file_handler(config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = _formatter(config.format)
    task_filter = TaskContextFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(task_filter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)
