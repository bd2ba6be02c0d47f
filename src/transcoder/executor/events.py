"""Typed events emitted by pipelines and the batch scheduler.

Each pipeline invocation reports through a single callback receiving
these immutable event objects, and records them in order on its result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from transcoder.tools.ffmpeg_progress import ProgressSample

if TYPE_CHECKING:
    from transcoder.jobs.models import BatchResult


# Single-file pipeline events


@dataclass(frozen=True)
class StartEvent:
    """The tool process was started."""

    command: str
    args: tuple[str, ...]


@dataclass(frozen=True)
class ProgressEvent:
    """A progress sample was parsed from tool output."""

    sample: ProgressSample
    duration: float | None = None

    @property
    def percent(self) -> float | None:
        return self.sample.percent(self.duration)


@dataclass(frozen=True)
class LogEvent:
    """One line of tool output, verbatim."""

    stream: Literal["stdout", "stderr"]
    line: str


PipelineEvent = StartEvent | ProgressEvent | LogEvent


# Batch events


@dataclass(frozen=True)
class BatchStartEvent:
    total: int


@dataclass(frozen=True)
class FileStartEvent:
    file_path: Path
    output_path: Path | None
    media_type: str | None
    index: int


@dataclass(frozen=True)
class FileProgressEvent:
    """Progress of one file; percent is 0-100."""

    file_path: Path
    index: int
    percent: float
    sample: ProgressSample | None = None


@dataclass(frozen=True)
class FileCompleteEvent:
    file_path: Path
    output_path: Path
    metadata: dict[str, Any] | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class FileErrorEvent:
    file_path: Path
    error: str


@dataclass(frozen=True)
class BatchProgressEvent:
    completed: int
    total: int
    percent: float


@dataclass(frozen=True)
class BatchCompleteEvent:
    result: BatchResult


BatchEvent = (
    BatchStartEvent
    | FileStartEvent
    | FileProgressEvent
    | FileCompleteEvent
    | FileErrorEvent
    | BatchProgressEvent
    | BatchCompleteEvent
)

EventCallback = Callable[[Any], None]
