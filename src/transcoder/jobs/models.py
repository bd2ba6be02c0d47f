"""Batch task and result records."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class TaskStatus(enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.QUEUED: frozenset({TaskStatus.RUNNING, TaskStatus.FAILED}),
    TaskStatus.RUNNING: frozenset({TaskStatus.SUCCEEDED, TaskStatus.FAILED}),
    TaskStatus.SUCCEEDED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass
class FileTask:
    """One file of a batch.

    Status moves queued -> running -> succeeded | failed, each step at
    most once. A queued task that is never admitted (batch cancelled)
    goes straight to failed.
    """

    index: int
    path: Path
    file_id: str
    media_type: str | None = None
    output_path: Path | None = None
    status: TaskStatus = TaskStatus.QUEUED

    def transition(self, status: TaskStatus) -> None:
        """Move to a new status.

        Raises:
            RuntimeError: If the transition is not allowed.
        """
        if status not in _TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid task transition for {self.path}: "
                f"{self.status.value} -> {status.value}"
            )
        self.status = status


@dataclass
class FileOutcome:
    """Result of one file, successful or not."""

    input_path: Path
    output_path: Path | None = None
    media_type: str | None = None
    metadata: dict[str, Any] | None = None
    thumbnails: list[Path] | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Accumulated batch outcome.

    Only the scheduler thread appends to this record; read it after the
    batch completes or through BatchCompleteEvent.
    """

    total: int
    completed: int = 0
    successful: list[FileOutcome] = field(default_factory=list)
    failed: list[FileOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def degraded(self) -> list[FileOutcome]:
        """Successful files that skipped or failed an optional feature."""
        return [outcome for outcome in self.successful if outcome.warnings]

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return round(self.completed / self.total * 100, 1)

    def record(self, outcome: FileOutcome) -> None:
        """Append an outcome and count it as completed."""
        if outcome.success:
            self.successful.append(outcome)
        else:
            self.failed.append(outcome)
        self.completed += 1
