"""Dataclasses for the sections of ``config.toml``.

Each section maps to a TOML table of the same name (``[tools]``,
``[processing]``, ``[logging]``). Values are checked on construction so
a bad file or environment variable fails before any encode starts.
"""

from dataclasses import dataclass, field
from pathlib import Path

LOG_LEVELS = ("debug", "info", "warning", "error")
LOG_FORMATS = ("text", "json")


def _require_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value.casefold() not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


@dataclass
class ToolPathsConfig:
    """Explicit executables; unset entries are resolved from PATH."""

    ffmpeg: Path | None = None
    ffprobe: Path | None = None
    convert: Path | None = None
    identify: Path | None = None


@dataclass
class ProcessingConfig:
    concurrency: int = 2
    """Files encoded at once in a batch."""

    transcode_timeout: float | None = None
    """Seconds an encode may run before it is killed; None waits forever."""

    probe_timeout: int = 60
    """Seconds allowed for ffprobe, identify and thumbnail captures."""

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1; got {self.concurrency}")
        if self.transcode_timeout is not None and self.transcode_timeout <= 0:
            raise ValueError(
                f"transcode_timeout must be positive; got {self.transcode_timeout}"
            )


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "text"

    file: Path | None = None
    """Log file; without one, logs go to stderr."""

    include_stderr: bool = False
    """Keep logging to stderr when a file is set."""

    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self) -> None:
        _require_choice("level", self.level, LOG_LEVELS)
        _require_choice("format", self.format, LOG_FORMATS)


@dataclass
class AppConfig:
    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    presets_file: Path | None = None
    """YAML presets merged over the built-in ones."""
