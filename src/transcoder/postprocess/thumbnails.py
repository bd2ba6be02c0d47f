"""Thumbnail capture from video files.

Each instant is captured by its own single-frame ffmpeg invocation.
"""

from __future__ import annotations

import logging
import re
import subprocess  # nosec B404 - used only for TimeoutExpired
from dataclasses import dataclass, field
from pathlib import Path

from transcoder.core.subprocess_utils import run_command
from transcoder.core.time_utils import format_seconds
from transcoder.exceptions import ThumbnailError
from transcoder.options.models import ThumbnailSpec

logger = logging.getLogger(__name__)

_INDEX_PLACEHOLDER = re.compile(r"%0?\d*d")

DEFAULT_PATTERN = "thumbnail-%03d"


def thumbnail_instants(spec: ThumbnailSpec, duration: float | None) -> list[float]:
    """Capture instants in seconds.

    Explicit timestamps are used verbatim, in order. Otherwise count
    instants are spread evenly: ``duration / (count + 1) * i`` for
    i = 1..count.

    Raises:
        ThumbnailError: In interval mode when the duration is unknown.
    """
    if spec.timestamps:
        return list(spec.timestamps)
    if not duration or duration <= 0:
        raise ThumbnailError("Cannot place thumbnails: video duration is unknown")
    step = duration / (spec.count + 1)
    return [step * i for i in range(1, spec.count + 1)]


def thumbnail_filename(pattern: str, index: int, image_format: str) -> str:
    """File name for the index-th thumbnail (index starts at 1).

    The first printf-style integer placeholder in the pattern (``%03d``,
    ``%d``) receives the index; a pattern without one gets ``-<index>``.
    """
    if _INDEX_PLACEHOLDER.search(pattern):
        stem = _INDEX_PLACEHOLDER.sub(lambda m: m.group(0) % index, pattern, count=1)
    else:
        stem = f"{pattern}-{index}"
    return f"{stem}.{image_format}"


@dataclass
class ThumbnailResult:
    """Captured thumbnails and the failures tolerated along the way."""

    paths: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ThumbnailGenerator:
    """Capture still frames with ffmpeg."""

    DEFAULT_TIMEOUT: int = 60

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: int | None = None) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    def capture(
        self, input_path: Path, timestamp: float, output_path: Path, *, overwrite: bool = False
    ) -> Path:
        """Capture a single frame at a timestamp.

        Raises:
            ThumbnailError: If ffmpeg fails or writes no file, or the
                target exists and ``overwrite`` is not set.
        """
        if not overwrite and output_path.exists():
            raise ThumbnailError(f"Thumbnail already exists: {output_path}")
        args = [
            self._ffmpeg_path,
            "-ss",
            format_seconds(timestamp),
            "-i",
            str(input_path),
            "-vframes",
            "1",
            "-an",
            "-q:v",
            "2",
            "-f",
            "image2",
            "-y" if overwrite else "-n",
            str(output_path),
        ]
        try:
            _, stderr, returncode = run_command(args, timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            raise ThumbnailError(
                f"Thumbnail capture at {timestamp}s timed out after {e.timeout}s"
            ) from e
        except OSError as e:
            raise ThumbnailError(f"Failed to start ffmpeg for thumbnail: {e}") from e

        if returncode != 0:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
            raise ThumbnailError(
                f"Thumbnail capture at {timestamp}s failed with code {returncode}: {detail}"
            )
        if not output_path.exists():
            raise ThumbnailError(f"Thumbnail was not created: {output_path}")
        return output_path

    def generate(
        self,
        input_path: Path,
        spec: ThumbnailSpec,
        output_dir: Path,
        *,
        duration: float | None = None,
        default_pattern: str = DEFAULT_PATTERN,
        overwrite: bool = False,
    ) -> ThumbnailResult:
        """Capture thumbnails according to a spec.

        With ``on_failure="abort"`` the first failed capture raises and no
        thumbnails are reported. With ``"continue"`` failures become
        warnings and the successful captures are returned. Files are
        named by ``spec.filename_pattern``, or ``default_pattern`` when the
        spec leaves it unset. Existing files are replaced only with
        ``overwrite``.

        Raises:
            ThumbnailError: On abort, when the duration is needed but
                unknown, or when every capture failed.
        """
        instants = thumbnail_instants(spec, duration)
        output_dir.mkdir(parents=True, exist_ok=True)

        pattern = spec.filename_pattern or default_pattern
        result = ThumbnailResult()
        for index, instant in enumerate(instants, start=1):
            target = output_dir / thumbnail_filename(pattern, index, spec.format)
            try:
                result.paths.append(
                    self.capture(input_path, instant, target, overwrite=overwrite)
                )
            except ThumbnailError as e:
                if spec.on_failure == "abort":
                    raise
                logger.warning("Skipping thumbnail %d: %s", index, e)
                result.warnings.append(str(e))

        if not result.paths:
            raise ThumbnailError(
                f"All {len(instants)} thumbnail captures failed for {input_path}"
            )
        logger.debug("Captured %d thumbnails for %s", len(result.paths), input_path)
        return result
