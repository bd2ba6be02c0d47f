"""Shared executor types.

FilterSpec and TranscodeCommand describe what a command builder
produced; TempAssetScope owns files created for one invocation.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSpec:
    """Ordered filter expressions for one invocation."""

    video_filters: tuple[str, ...] = ()
    """Video filter expressions, in application order."""

    audio_filters: tuple[str, ...] = ()
    """Audio filter chain, in application order."""

    uses_complex_graph: bool = False
    """True when a second input is merged through -filter_complex."""

    extra_inputs: tuple[str, ...] = ()
    """Additional -i inputs (watermark images), in input index order."""

    warnings: tuple[str, ...] = ()
    """Features skipped or degraded while synthesizing the filters."""


@dataclass(frozen=True)
class TranscodeCommand:
    """A synthesized tool invocation."""

    args: tuple[str, ...]
    """Full argument vector, executable first."""

    filters: FilterSpec = field(default_factory=FilterSpec)

    warnings: tuple[str, ...] = ()
    """Degradations recorded while building the command."""

    @property
    def command_line(self) -> str:
        """Shell-quoted command string for logging and results."""
        return shlex.join(self.args)


class TempAssetScope:
    """Directory for temporary files tied to one pipeline invocation.

    The directory is created lazily and removed on exit, whether the
    pipeline succeeded or raised.

    Example:
        with TempAssetScope() as assets:
            text_file = assets.write_text("watermark.txt", "Sample")
            ...  # removed when the block exits
    """

    def __init__(self, prefix: str = "transcoder-") -> None:
        self._prefix = prefix
        self._dir: Path | None = None

    @property
    def directory(self) -> Path:
        if self._dir is None:
            self._dir = Path(tempfile.mkdtemp(prefix=self._prefix))
        return self._dir

    def path(self, name: str) -> Path:
        """Return a path inside the scope directory."""
        return self.directory / name

    def write_text(self, name: str, content: str) -> Path:
        """Write a UTF-8 text file inside the scope and return its path."""
        path = self.path(name)
        path.write_text(content, encoding="utf-8")
        return path

    def cleanup(self) -> None:
        if self._dir is not None:
            shutil.rmtree(self._dir, ignore_errors=True)
            logger.debug("Removed temporary assets: %s", self._dir)
            self._dir = None

    def __enter__(self) -> TempAssetScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cleanup()


def parse_custom_args(raw: str | None) -> tuple[list[str], str | None]:
    """Tokenize a raw argument string, respecting and removing quotes.

    Args:
        raw: Arguments as typed on a shell command line.

    Returns:
        Tuple of (tokens, warning). A malformed string yields no tokens
        and a warning message instead of raising.
    """
    if not raw or not raw.strip():
        return [], None
    try:
        return shlex.split(raw), None
    except ValueError as e:
        warning = f"Ignoring malformed custom arguments {raw!r}: {e}"
        logger.warning(warning)
        return [], warning
