"""Terminal output for commands: error exits, warnings and progress."""

from __future__ import annotations

import json
import sys
import threading
from typing import NoReturn

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.config.loader import ConfigError
from transcoder.config.presets import PresetError
from transcoder.exceptions import (
    ConflictError,
    NotFoundError,
    ToolExecutionError,
    ToolLaunchError,
    TranscodeCancelledError,
    ValidationError,
)

# First match wins; subclasses of ToolExecutionError come before it.
_ERROR_CODES: tuple[tuple[type[Exception] | tuple[type[Exception], ...], ExitCode], ...] = (
    (ValidationError, ExitCode.VALIDATION_ERROR),
    ((ConfigError, PresetError), ExitCode.CONFIG_ERROR),
    (NotFoundError, ExitCode.TARGET_NOT_FOUND),
    (ConflictError, ExitCode.OUTPUT_EXISTS),
    (ToolLaunchError, ExitCode.TOOL_NOT_AVAILABLE),
    (TranscodeCancelledError, ExitCode.INTERRUPTED),
    (ToolExecutionError, ExitCode.OPERATION_FAILED),
)


def exit_code_for(error: Exception) -> ExitCode:
    """Exit code a command reports for ``error``."""
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCode.GENERAL_ERROR


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Report ``message`` on stderr and exit with ``code``.

    In JSON mode the report is ``{"status": "failed", "error": {...}}``
    so scripts parsing the output still get one object.
    """
    if json_output:
        name = code.name if isinstance(code, ExitCode) else "UNKNOWN_ERROR"
        report = {"status": "failed", "error": {"code": name, "message": message}}
        click.echo(json.dumps(report), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def warning_output(message: str, json_output: bool = False) -> None:
    """Print a warning on stderr unless output is JSON."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)


class ProgressTracker:
    """Single status line on stderr, redrawn with carriage returns.

    Batch workers call start_file()/complete_file() from their threads;
    single encodes call update_percent() from the progress callback.
    """

    def __init__(self, total: int = 1, enabled: bool = True) -> None:
        self.total = total
        self.completed = 0
        self.active = 0
        self.enabled = enabled
        self._lock = threading.Lock()

    def _counts(self, started: int, finished: int) -> str:
        with self._lock:
            self.active = max(0, self.active + started - finished)
            self.completed += finished
            return f"Processing: {self.completed}/{self.total} [{self.active} active]"

    def start_file(self) -> None:
        self._write("\r" + self._counts(1, 0))

    def complete_file(self) -> None:
        self._write("\r" + self._counts(0, 1))

    def update_percent(self, percent: float, label: str = "Encoding") -> None:
        self._write(f"\r{label}: {percent:5.1f}%")

    def finish(self) -> None:
        self._write("\n")

    def _write(self, text: str) -> None:
        # Outside the lock: a slow terminal must not stall workers.
        if self.enabled:
            sys.stderr.write(text)
            sys.stderr.flush()
