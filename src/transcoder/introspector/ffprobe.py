"""Audio and video metadata from ffprobe's JSON report."""

from __future__ import annotations

import json
import logging
import subprocess  # nosec B404
from pathlib import Path
from typing import Any

from transcoder.core.subprocess_utils import run_command
from transcoder.exceptions import MediaIntrospectionError
from transcoder.introspector.parsers import metadata_duration, parse_ffprobe_output

logger = logging.getLogger(__name__)


class FFprobeIntrospector:
    """Probe a file with ffprobe; ``ffprobe_path`` is resolved by the caller."""

    DEFAULT_TIMEOUT: int = 60

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: int | None = None) -> None:
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    def _run(self, args: list[str], path: Path) -> str:
        try:
            stdout, stderr, returncode = run_command(
                [self._ffprobe_path, *args, str(path)], timeout=self._timeout
            )
        except subprocess.TimeoutExpired as e:
            raise MediaIntrospectionError(
                f"ffprobe timed out on {path} ({e.timeout}s)"
            ) from e
        except OSError as e:
            raise MediaIntrospectionError(f"Failed to start ffprobe: {e}") from e
        if returncode != 0:
            raise MediaIntrospectionError(
                f"ffprobe failed for {path}: {stderr.strip() or f'exit code {returncode}'}"
            )
        return stdout

    def probe(self, path: Path) -> dict[str, Any]:
        """Raw ``-show_format -show_streams`` output as a dict."""
        if not path.exists():
            raise MediaIntrospectionError(f"File not found: {path}")

        stdout = self._run(
            ["-v", "error", "-print_format", "json", "-show_format", "-show_streams"],
            path,
        )
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MediaIntrospectionError(f"Invalid ffprobe output for {path}: {e}") from e

        if not isinstance(data, dict) or "format" not in data or "streams" not in data:
            raise MediaIntrospectionError(
                f"Missing 'format' or 'streams' in ffprobe output for {path}. "
                "Is it a media file?"
            )
        return data

    def get_metadata(self, path: Path) -> dict[str, Any]:
        """Container format plus the first video and audio stream."""
        return parse_ffprobe_output(path, self.probe(path))

    def get_duration(self, path: Path) -> float | None:
        """Return the media duration in seconds.

        Uses the full probe first and falls back to a format-only query
        (``-show_entries format=duration``) for files whose streams
        ffprobe cannot describe.

        Raises:
            MediaIntrospectionError: If neither query yields a duration.
        """
        try:
            duration = metadata_duration(self.get_metadata(path))
            if duration:
                return duration
        except MediaIntrospectionError as e:
            logger.debug("Full probe failed, trying duration query: %s", e)

        stdout = self._run(
            [
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
            ],
            path,
        )
        try:
            return float(stdout.strip())
        except ValueError as e:
            raise MediaIntrospectionError(
                f"Could not determine duration of {path}: {stdout.strip()!r}"
            ) from e
