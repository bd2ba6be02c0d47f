"""Bounded-concurrency batch processing.

BatchScheduler keeps a cursor into the file list and a set of active
tasks. Files are admitted while fewer than ``concurrency`` tasks run;
every completion is recorded, reported, and immediately followed by
further admissions. The batch completes only when the cursor is
exhausted and no task is active.

Pipelines run on a ThreadPoolExecutor sized to the concurrency limit.
The thread calling run() is the only writer of the active set and the
BatchResult; worker threads only run pipelines and emit per-file
progress events.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any

from transcoder.config.presets import PresetRegistry, get_default_registry
from transcoder.exceptions import TranscoderError, ValidationError
from transcoder.executor.events import (
    BatchCompleteEvent,
    BatchProgressEvent,
    BatchStartEvent,
    EventCallback,
    FileCompleteEvent,
    FileErrorEvent,
    FileProgressEvent,
    FileStartEvent,
    ProgressEvent,
)
from transcoder.executor.pipeline import (
    PipelineResult,
    transcode_audio,
    transcode_image,
    transcode_video,
)
from transcoder.executor.supervisor import CancellationToken
from transcoder.jobs.models import BatchResult, FileOutcome, FileTask, TaskStatus
from transcoder.jobs.outputs import output_path_for
from transcoder.logging import task_context
from transcoder.scanner.discovery import classify_media_type, scan_directory

logger = logging.getLogger(__name__)

PipelineFunc = Callable[..., PipelineResult]

DEFAULT_PIPELINES: Mapping[str, PipelineFunc] = {
    "video": transcode_video,
    "audio": transcode_audio,
    "image": transcode_image,
}

CANCELLED_MESSAGE = "Batch cancelled before the file was started"


class BatchScheduler:
    """Run the matching single-file pipeline over many files.

    Example:
        scheduler = BatchScheduler("out", concurrency=4,
                                   options={"video": {"preset": "web"}})
        result = scheduler.run_directory("media", recursive=True)
        print(len(result.successful), len(result.failed))
    """

    def __init__(
        self,
        output_dir: Path | str,
        pipelines: Mapping[str, PipelineFunc] | None = None,
        *,
        concurrency: int = 2,
        options: Mapping[str, Mapping[str, Any]] | None = None,
        output_prefix: str = "",
        output_suffix: str = "",
        output_extension: str | None = None,
        registry: PresetRegistry | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            output_dir: Directory receiving every output file.
            pipelines: Pipeline per media type (default: the video, audio
                and image pipelines). Each is called as
                ``pipeline(input, output, options, on_event=..., cancel_token=...)``.
            concurrency: Maximum number of files processed at once.
            options: Override maps keyed by media type ("video", "audio",
                "image").
            output_prefix: Prepended to each output file name.
            output_suffix: Appended to each output stem.
            output_extension: Extension forced on every output.
            registry: Preset registry used for output extensions.
            on_event: Receives batch events. File progress events arrive
                from worker threads; all other events from the thread
                running the batch.

        Raises:
            ValidationError: If concurrency is below 1 or options are
                keyed by something other than a media type.
        """
        if concurrency < 1:
            raise ValidationError(
                f"concurrency must be at least 1, got {concurrency}", field="concurrency"
            )
        options = dict(options or {})
        unknown = set(options) - set(DEFAULT_PIPELINES)
        if unknown:
            raise ValidationError(
                f"Batch options must be keyed by media type, got: {', '.join(sorted(unknown))}",
                field="options",
            )

        self.output_dir = Path(output_dir)
        self.pipelines = dict(pipelines if pipelines is not None else DEFAULT_PIPELINES)
        self.concurrency = concurrency
        self.options = options
        self.output_prefix = output_prefix
        self.output_suffix = output_suffix
        self.output_extension = output_extension
        self.registry = registry or get_default_registry()
        self._on_event = on_event
        self._cancelled = threading.Event()
        self._tokens: dict[int, CancellationToken] = {}
        self._tokens_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop admitting files and cancel the running ones.

        Safe to call from any thread. Files not yet admitted are recorded
        as failed.
        """
        if self._cancelled.is_set():
            return
        logger.info("Cancelling batch")
        self._cancelled.set()
        with self._tokens_lock:
            for token in self._tokens.values():
                token.cancel()

    def _emit(self, event: Any) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.warning("Batch event callback error: %s", e)

    def _options_for(self, media_type: str | None) -> Mapping[str, Any]:
        if media_type is None:
            return {}
        return self.options.get(media_type) or {}

    def _admit(self, task: FileTask) -> None:
        task.media_type = classify_media_type(task.path)
        if task.media_type is not None:
            task.output_path = output_path_for(
                task.path,
                self.output_dir,
                task.media_type,
                self._options_for(task.media_type),
                prefix=self.output_prefix,
                suffix=self.output_suffix,
                extension=self.output_extension,
                registry=self.registry,
            )
        task.transition(TaskStatus.RUNNING)
        self._emit(
            FileStartEvent(
                file_path=task.path,
                output_path=task.output_path,
                media_type=task.media_type,
                index=task.index,
            )
        )

    def _process(self, task: FileTask, slot: str) -> FileOutcome:
        """Run one file's pipeline (worker thread)."""
        token = CancellationToken()
        with self._tokens_lock:
            self._tokens[task.index] = token
            if self._cancelled.is_set():
                token.cancel()

        def forward(event: Any) -> None:
            if isinstance(event, ProgressEvent) and event.percent is not None:
                self._emit(
                    FileProgressEvent(
                        file_path=task.path,
                        index=task.index,
                        percent=event.percent,
                        sample=event.sample,
                    )
                )

        outcome = FileOutcome(
            input_path=task.path,
            output_path=task.output_path,
            media_type=task.media_type,
        )
        try:
            with task_context(slot, task.file_id, task.path):
                logger.info("=== FILE %s: %s", task.file_id, task.path)
                if task.media_type is None or task.output_path is None:
                    raise ValidationError(f"Unsupported file type: {task.path}")
                pipeline = self.pipelines.get(task.media_type)
                if pipeline is None:
                    raise ValidationError(
                        f"No pipeline configured for {task.media_type} files"
                    )
                self._emit(FileProgressEvent(file_path=task.path, index=task.index, percent=0.0))
                result = pipeline(
                    task.path,
                    task.output_path,
                    self._options_for(task.media_type),
                    on_event=forward,
                    cancel_token=token,
                )
                self._emit(
                    FileProgressEvent(file_path=task.path, index=task.index, percent=100.0)
                )
                outcome.output_path = result.output_path
                outcome.metadata = result.metadata
                outcome.thumbnails = result.thumbnails
                outcome.warnings = list(result.warnings)
                logger.info("Completed %s", task.path)
        except TranscoderError as e:
            with task_context(slot, task.file_id, task.path):
                logger.error("Failed to process %s: %s", task.path, e)
            outcome.error = str(e)
        except Exception as e:
            with task_context(slot, task.file_id, task.path):
                logger.exception("Unexpected error for %s: %s", task.path, e)
            outcome.error = f"Unexpected error: {e}"
        finally:
            with self._tokens_lock:
                self._tokens.pop(task.index, None)
        return outcome

    def _finish(self, task: FileTask, outcome: FileOutcome, result: BatchResult) -> None:
        task.transition(TaskStatus.SUCCEEDED if outcome.success else TaskStatus.FAILED)
        result.record(outcome)
        if outcome.success:
            self._emit(
                FileCompleteEvent(
                    file_path=task.path,
                    output_path=outcome.output_path or task.path,
                    metadata=outcome.metadata,
                    warnings=tuple(outcome.warnings),
                )
            )
        else:
            self._emit(FileErrorEvent(file_path=task.path, error=outcome.error or ""))
        self._emit(
            BatchProgressEvent(
                completed=result.completed, total=result.total, percent=result.percent
            )
        )

    def run(self, paths: Iterable[Path | str]) -> BatchResult:
        """Process files and return once every admitted file has finished.

        One file's failure never stops the others. Failures are captured
        per file in BatchResult.failed.
        """
        files = [Path(p) for p in paths]
        width = max(3, len(str(len(files))))
        tasks = [
            FileTask(index=i, path=path, file_id=f"F{i:0{width}d}")
            for i, path in enumerate(files, start=1)
        ]
        result = BatchResult(total=len(tasks))
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Starting batch of %d files",
            len(tasks),
            extra={"concurrency": self.concurrency, "output_dir": str(self.output_dir)},
        )
        self._emit(BatchStartEvent(total=len(tasks)))

        cursor = 0
        active: dict[Future[FileOutcome], tuple[FileTask, str]] = {}
        free_slots = [f"{n:02d}" for n in range(self.concurrency, 0, -1)]

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="transcode"
        ) as executor:
            while True:
                while (
                    not self._cancelled.is_set()
                    and cursor < len(tasks)
                    and len(active) < self.concurrency
                ):
                    task = tasks[cursor]
                    cursor += 1
                    slot = free_slots.pop()
                    self._admit(task)
                    active[executor.submit(self._process, task, slot)] = (task, slot)

                if not active:
                    break

                done, _ = wait(active, return_when=FIRST_COMPLETED)
                for future in done:
                    task, slot = active.pop(future)
                    free_slots.append(slot)
                    free_slots.sort(reverse=True)
                    self._finish(task, future.result(), result)

        for task in tasks[cursor:]:
            task.transition(TaskStatus.FAILED)
            self._finish_unadmitted(task, result)

        result.cancelled = self._cancelled.is_set()
        logger.info(
            "Batch complete: %d succeeded, %d failed",
            len(result.successful),
            len(result.failed),
        )
        self._emit(BatchCompleteEvent(result=result))
        return result

    def _finish_unadmitted(self, task: FileTask, result: BatchResult) -> None:
        outcome = FileOutcome(input_path=task.path, error=CANCELLED_MESSAGE)
        result.record(outcome)
        self._emit(FileErrorEvent(file_path=task.path, error=CANCELLED_MESSAGE))
        self._emit(
            BatchProgressEvent(
                completed=result.completed, total=result.total, percent=result.percent
            )
        )

    def run_directory(
        self,
        directory: Path | str,
        *,
        media_types: Iterable[str] | None = None,
        extensions: Iterable[str] | None = None,
        recursive: bool = False,
    ) -> BatchResult:
        """Scan a directory for media files and process them.

        Raises:
            NotFoundError: If the directory does not exist.
        """
        files = scan_directory(
            directory, media_types=media_types, extensions=extensions, recursive=recursive
        )
        logger.info("Found %d media files in %s", len(files), directory)
        return self.run(files)
