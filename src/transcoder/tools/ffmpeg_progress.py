"""FFmpeg progress parsing utilities.

This module parses progress fields out of FFmpeg output, both the
key=value blocks written by ``-progress pipe:1`` and the status lines
FFmpeg interleaves into stderr. It also provides LineBuffer, which
reassembles lines split across pipe reads before they are parsed.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass, fields


@dataclass(frozen=True)
class ProgressSample:
    """Partial snapshot of encoder progress.

    Every field is optional; a sample is only produced when at least one
    field could be extracted.
    """

    frame_count: int | None = None
    frames_per_second: float | None = None
    elapsed_seconds: float | None = None
    bitrate_kbps: float | None = None
    size_bytes: int | None = None
    speed_multiplier: float | None = None

    def is_empty(self) -> bool:
        """True when no field was extracted."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def percent(self, duration_seconds: float | None) -> float | None:
        """Calculate completion percentage from elapsed output time.

        Args:
            duration_seconds: Total duration of the media in seconds.

        Returns:
            Percentage clamped to 0.0-100.0, or None if it cannot be known.
        """
        if not duration_seconds or duration_seconds <= 0:
            return None
        if self.elapsed_seconds is None:
            return None
        return max(0.0, min(100.0, self.elapsed_seconds / duration_seconds * 100))


# Also matches "out_time=" in -progress blocks.
_TIME_PATTERN = re.compile(r"time=\s*(\d+):(\d+):(\d+(?:\.\d+)?)")
_FRAME_PATTERN = re.compile(r"\bframe=\s*(\d+)")
_FPS_PATTERN = re.compile(r"\bfps=\s*(\d+(?:\.\d+)?)")
_BITRATE_PATTERN = re.compile(r"\bbitrate=\s*(\d+(?:\.\d+)?)\s*kbits/s")
# "Lsize=" is the final summary line; "total_size=" must not match
_SIZE_KB_PATTERN = re.compile(r"(?<![A-Za-z_])L?size=\s*(\d+)\s*(?:kB|KiB)")
_TOTAL_SIZE_PATTERN = re.compile(r"\btotal_size=\s*(\d+)")
_SPEED_PATTERN = re.compile(r"\bspeed=\s*(\d+(?:\.\d+)?)x")
_DURATION_PATTERN = re.compile(r"\bDuration:\s*(\d+):(\d+):(\d+(?:\.\d+)?)")


def parse_progress(text: str) -> ProgressSample | None:
    """Extract progress fields from a chunk of FFmpeg output.

    Recognized fields: frame count, frames per second, elapsed time
    (H:M:S.ms converted to seconds), bitrate in kbit/s, size in kB
    (converted to bytes) or total_size in bytes, and speed multiplier.
    Values reported as "N/A" are skipped.

    Args:
        text: A stderr status line or a -progress block.

    Returns:
        ProgressSample with the fields found, or None if none were found.

    Example:
        "time=00:01:02.50 frame=120 fps=30" yields elapsed_seconds=62.5,
        frame_count=120 and frames_per_second=30.0; the rest stay None.
    """
    values: dict[str, int | float] = {}

    match = _FRAME_PATTERN.search(text)
    if match:
        values["frame_count"] = int(match.group(1))

    match = _FPS_PATTERN.search(text)
    if match:
        values["frames_per_second"] = float(match.group(1))

    match = _TIME_PATTERN.search(text)
    if match:
        hours, minutes, seconds = match.groups()
        values["elapsed_seconds"] = int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    match = _BITRATE_PATTERN.search(text)
    if match:
        values["bitrate_kbps"] = float(match.group(1))

    match = _SIZE_KB_PATTERN.search(text)
    if match:
        values["size_bytes"] = int(match.group(1)) * 1024
    else:
        match = _TOTAL_SIZE_PATTERN.search(text)
        if match:
            values["size_bytes"] = int(match.group(1))

    match = _SPEED_PATTERN.search(text)
    if match:
        values["speed_multiplier"] = float(match.group(1))

    if not values:
        return None
    return ProgressSample(**values)


class LineBuffer:
    """Reassemble complete lines from arbitrarily split pipe reads.

    FFmpeg terminates status lines with a carriage return and -progress
    lines with a newline; both count as line ends. Bytes are decoded
    incrementally so multi-byte characters may also be split.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, data: bytes | str) -> list[str]:
        """Add a chunk and return the lines it completed.

        Empty lines are dropped. An unterminated tail is kept until a
        later chunk completes it or flush() is called.
        """
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._pending += data
        *complete, self._pending = re.split(r"[\r\n]", self._pending)
        return [line for line in complete if line.strip()]

    def flush(self) -> list[str]:
        """Return the unterminated tail, if any, and reset the buffer."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return [tail] if tail.strip() else []


class ProgressBlockCollector:
    """Group ``-progress`` key=value lines into blocks.

    FFmpeg ends each block with a ``progress=continue`` or
    ``progress=end`` line; the block is parsed once that line arrives.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []

    def add_line(self, line: str) -> ProgressSample | None:
        """Add one line; return a sample when it closed a block."""
        if line.startswith("progress="):
            block = "\n".join(self._lines)
            self._lines = []
            return parse_progress(block)
        self._lines.append(line)
        return None


def parse_duration(line: str) -> float | None:
    """Extract the input duration from an FFmpeg stderr header line.

    FFmpeg prints ``Duration: 00:00:05.00, start: ...`` for each input.

    Returns:
        Duration in seconds, or None if the line has no duration.
    """
    match = _DURATION_PATTERN.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
