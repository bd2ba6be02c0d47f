"""External tool process supervision.

ProcessSupervisor runs one synthesized command, reads stdout and stderr
on two reader threads, turns every complete line into a LogEvent and
every parsable progress record into a ProgressEvent, and resolves the
run to success or a typed failure.
"""

from __future__ import annotations

import enum
import logging
import queue
import shlex
import subprocess  # nosec B404 - subprocess is required for tool invocation
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from transcoder.exceptions import (
    ToolExecutionError,
    ToolLaunchError,
    ToolTimeoutError,
    TranscodeCancelledError,
)
from transcoder.executor.events import EventCallback, LogEvent, ProgressEvent, StartEvent
from transcoder.tools.ffmpeg_progress import (
    LineBuffer,
    ProgressBlockCollector,
    ProgressSample,
    parse_duration,
    parse_progress,
)

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag used to cancel a running task."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout elapses."""
        return self._event.wait(timeout)


class SupervisorState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SupervisorOutcome:
    """Result of a successful supervised run."""

    returncode: int
    output_path: Path
    stderr: str
    elapsed_seconds: float
    duration: float | None = None
    last_progress: ProgressSample | None = None
    events: list[Any] = field(default_factory=list)


class ProcessSupervisor:
    """Run an external tool and reduce its output to events.

    State machine: NOT_STARTED -> RUNNING -> SUCCEEDED | FAILED. Each
    supervisor runs at most once.

    Success requires exit code 0 and an existing output file. A zero
    exit without the output file is a failure (the tool reported success
    but produced nothing).
    """

    POLL_INTERVAL: float = 0.1
    READ_CHUNK_SIZE: int = 4096
    READER_JOIN_TIMEOUT: float = 5.0

    def __init__(
        self,
        args: Sequence[str],
        output_path: Path,
        *,
        duration: float | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            args: Full argument vector, executable first.
            output_path: File the tool is expected to create.
            duration: Media duration in seconds for percent calculation.
                When None, it is taken from the tool's "Duration:" header.
            timeout: Maximum runtime in seconds. None means no limit.
            cancel_token: Token checked while the process runs.
            on_event: Callback receiving StartEvent, ProgressEvent and
                LogEvent objects in emission order.
        """
        if not args:
            raise ValueError("args must not be empty")
        self.args = tuple(str(a) for a in args)
        self.output_path = Path(output_path)
        self.duration = duration
        self.timeout = timeout
        self.cancel_token = cancel_token or CancellationToken()
        self._on_event = on_event
        self._state = SupervisorState.NOT_STARTED
        self.events: list[Any] = []
        self._stderr_lines: list[str] = []
        self._last_progress: ProgressSample | None = None
        self._duration_from_header = duration is None

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def tool_name(self) -> str:
        return Path(self.args[0]).name

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)

    def _emit(self, event: Any) -> None:
        self.events.append(event)
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.warning("Event callback error: %s", e)

    def _handle_line(self, stream: str, line: str, collector: ProgressBlockCollector) -> None:
        self._emit(LogEvent(stream=stream, line=line))  # type: ignore[arg-type]
        if stream == "stderr":
            self._stderr_lines.append(line)
            if self._duration_from_header and self.duration is None:
                self.duration = parse_duration(line)
            sample = parse_progress(line)
        else:
            sample = collector.add_line(line)
        if sample is not None:
            self._last_progress = sample
            self._emit(ProgressEvent(sample=sample, duration=self.duration))

    def _reader(
        self,
        name: str,
        pipe: IO[bytes],
        chunks: queue.Queue[tuple[str, bytes | None]],
    ) -> None:
        try:
            while True:
                chunk = pipe.read1(self.READ_CHUNK_SIZE)  # type: ignore[attr-defined]
                if not chunk:
                    break
                chunks.put((name, chunk))
        except (ValueError, OSError) as e:
            # Pipe closed after the process was killed
            logger.debug("%s reader stopped: %s", name, e)
        finally:
            chunks.put((name, None))

    def _stop_reason(self, start_time: float) -> str | None:
        if self.cancel_token.cancelled:
            return "cancelled"
        if self.timeout is not None and time.monotonic() - start_time >= self.timeout:
            return "timeout"
        return None

    def run(self) -> SupervisorOutcome:
        """Run the process to completion.

        Returns:
            SupervisorOutcome for a successful run.

        Raises:
            ToolLaunchError: If the process could not be started.
            ToolExecutionError: If it exited nonzero or created no output.
            ToolTimeoutError: If it exceeded the timeout and was killed.
            TranscodeCancelledError: If the cancel token was set.
            RuntimeError: If run() is called a second time.
        """
        if self._state is not SupervisorState.NOT_STARTED:
            raise RuntimeError("ProcessSupervisor can only run once")

        if self.cancel_token.cancelled:
            self._state = SupervisorState.FAILED
            raise TranscodeCancelledError(f"{self.tool_name} cancelled before start")

        logger.debug("Starting %s", self.command_line)
        try:
            process = subprocess.Popen(  # nosec B603 - args are built internally
                self.args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            self._state = SupervisorState.FAILED
            raise ToolLaunchError(self.args[0], e.strerror or str(e)) from e

        self._state = SupervisorState.RUNNING
        start_time = time.monotonic()
        self._emit(StartEvent(command=self.command_line, args=self.args))

        chunks: queue.Queue[tuple[str, bytes | None]] = queue.Queue()
        readers = [
            threading.Thread(
                target=self._reader,
                args=(name, pipe, chunks),
                name=f"{self.tool_name}-{name}",
                daemon=True,
            )
            for name, pipe in (("stdout", process.stdout), ("stderr", process.stderr))
        ]
        for reader in readers:
            reader.start()

        buffers = {"stdout": LineBuffer(), "stderr": LineBuffer()}
        collector = ProgressBlockCollector()
        open_streams = len(readers)
        stop_reason: str | None = None

        while open_streams or process.poll() is None:
            stop_reason = self._stop_reason(start_time)
            if stop_reason:
                break
            if not open_streams:
                try:
                    process.wait(timeout=self.POLL_INTERVAL)
                except subprocess.TimeoutExpired:
                    pass
                continue
            try:
                name, chunk = chunks.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                continue
            if chunk is None:
                open_streams -= 1
                continue
            for line in buffers[name].feed(chunk):
                self._handle_line(name, line, collector)

        if stop_reason:
            logger.warning(
                "%s %s, killing process",
                self.tool_name,
                "timed out" if stop_reason == "timeout" else "cancelled",
                extra={"pid": process.pid, "timeout_seconds": self.timeout},
            )
            process.kill()
        process.wait()

        for reader in readers:
            reader.join(timeout=self.READER_JOIN_TIMEOUT)
        while True:
            try:
                name, chunk = chunks.get_nowait()
            except queue.Empty:
                break
            if chunk is not None:
                for line in buffers[name].feed(chunk):
                    self._handle_line(name, line, collector)
        for name, buffer in buffers.items():
            for line in buffer.flush():
                self._handle_line(name, line, collector)

        elapsed = time.monotonic() - start_time
        stderr_text = "\n".join(self._stderr_lines)
        returncode = process.returncode

        if stop_reason == "cancelled":
            self._state = SupervisorState.FAILED
            raise TranscodeCancelledError(
                f"{self.tool_name} was cancelled", returncode, stderr_text
            )
        if stop_reason == "timeout":
            self._state = SupervisorState.FAILED
            raise ToolTimeoutError(
                f"{self.tool_name} timed out after {self.timeout} seconds",
                returncode,
                stderr_text,
            )
        if returncode != 0:
            self._state = SupervisorState.FAILED
            raise ToolExecutionError(
                f"{self.tool_name} exited with code {returncode}",
                returncode,
                stderr_text,
            )
        if not self.output_path.exists():
            self._state = SupervisorState.FAILED
            raise ToolExecutionError(
                f"{self.tool_name} reported success but output file was not "
                f"created: {self.output_path}",
                returncode,
                stderr_text,
            )

        self._state = SupervisorState.SUCCEEDED
        logger.debug(
            "%s completed",
            self.tool_name,
            extra={"elapsed_seconds": round(elapsed, 3), "returncode": returncode},
        )
        return SupervisorOutcome(
            returncode=returncode,
            output_path=self.output_path,
            stderr=stderr_text,
            elapsed_seconds=elapsed,
            duration=self.duration,
            last_progress=self._last_progress,
            events=list(self.events),
        )
