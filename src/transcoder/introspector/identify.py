"""ImageMagick identify-based image introspection."""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - used only for TimeoutExpired
from pathlib import Path
from typing import Any

from transcoder.core.subprocess_utils import run_command
from transcoder.exceptions import MediaIntrospectionError

logger = logging.getLogger(__name__)


class ImageIntrospector:
    """Image dimensions and format via ``identify -format``."""

    DEFAULT_TIMEOUT: int = 60

    def __init__(self, identify_path: str = "identify", timeout: int | None = None) -> None:
        self._identify_path = identify_path
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    def _identify(self, path: Path, fmt: str) -> list[str]:
        # [0] selects the first frame of animated or multi-page images
        target = f"{path}[0]"
        try:
            stdout, stderr, returncode = run_command(
                [self._identify_path, "-format", fmt, target], timeout=self._timeout
            )
        except subprocess.TimeoutExpired as e:
            raise MediaIntrospectionError(
                f"identify timed out for {path} after {e.timeout}s"
            ) from e
        except OSError as e:
            raise MediaIntrospectionError(f"Failed to start identify: {e}") from e
        if returncode != 0:
            raise MediaIntrospectionError(
                f"identify failed for {path}: {stderr.strip() or f'exit code {returncode}'}"
            )
        return stdout.split()

    def get_dimensions(self, path: Path) -> tuple[int, int]:
        """Return (width, height) in pixels.

        Raises:
            MediaIntrospectionError: If identify fails or prints garbage.
        """
        fields = self._identify(path, "%w %h")
        try:
            width, height = int(fields[0]), int(fields[1])
        except (IndexError, ValueError) as e:
            raise MediaIntrospectionError(
                f"Unexpected identify output for {path}: {' '.join(fields)!r}"
            ) from e
        return width, height

    def get_metadata(self, path: Path) -> dict[str, Any]:
        """Describe an image: width, height and ImageMagick format name.

        Raises:
            MediaIntrospectionError: If the image cannot be introspected.
        """
        fields = self._identify(path, "%w %h %m")
        try:
            width, height, image_format = int(fields[0]), int(fields[1]), fields[2]
        except (IndexError, ValueError) as e:
            raise MediaIntrospectionError(
                f"Unexpected identify output for {path}: {' '.join(fields)!r}"
            ) from e
        return {
            "width": width,
            "height": height,
            "format": image_format,
            "size": path.stat().st_size if path.exists() else None,
        }
