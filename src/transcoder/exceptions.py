"""Exception taxonomy for transcoding pipelines.

Hard errors abort a single-file pipeline (and are captured per file in
batch mode). PostProcessWarning and its subclasses are soft: the pipeline
catches them, logs a warning and returns a result without the optional
field.
"""

from __future__ import annotations

from pathlib import Path


class TranscoderError(Exception):
    """Base exception for all transcoder errors.

    Callers can catch this to handle every pipeline failure with a single
    except clause.
    """


class ValidationError(TranscoderError):
    """Raised when options or path arguments are invalid.

    Always raised before any subprocess is started.

    Attributes:
        field: Name of the offending option, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class NotFoundError(TranscoderError):
    """Raised when an input file or scan directory does not exist."""

    def __init__(self, path: Path | str, what: str = "Input file") -> None:
        self.path = Path(path)
        super().__init__(f"{what} does not exist: {path}")


class ConflictError(TranscoderError):
    """Raised when the output exists and overwrite is not enabled."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(
            f"Output file already exists: {path}. Set overwrite to replace it."
        )


class ToolLaunchError(TranscoderError):
    """Raised when an external tool process could not be started.

    Distinct from ToolExecutionError: the process never ran.

    Attributes:
        tool: Executable that failed to launch.
    """

    def __init__(self, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(f"Failed to start {tool}: {reason}")


class ToolExecutionError(TranscoderError):
    """Raised when a tool exits nonzero or produced no output.

    Attributes:
        returncode: Process exit code (None if the process was killed
            before reporting one).
        stderr: Accumulated diagnostic output of the tool.
    """

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ToolTimeoutError(ToolExecutionError):
    """Raised when the runtime watchdog killed a hung process."""


class TranscodeCancelledError(ToolExecutionError):
    """Raised when a running task was cancelled through its token."""


class PostProcessWarning(TranscoderError):
    """Soft failure of a post-processing stage (metadata or thumbnails)."""


class MediaIntrospectionError(PostProcessWarning):
    """Raised when ffprobe or identify cannot describe a file."""


class ThumbnailError(PostProcessWarning):
    """Raised when a thumbnail capture fails."""
