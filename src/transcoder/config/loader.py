"""Build AppConfig from command options, environment and config.toml.

A setting comes from the first source that provides it: command-line
option, TRANSCODER_* variable, the TOML file (~/.transcoder/config.toml
unless TRANSCODER_CONFIG_PATH or --config says otherwise), then the
dataclass default.

Recognised variables:
- TRANSCODER_FFMPEG_PATH: Path to ffmpeg executable
- TRANSCODER_FFPROBE_PATH: Path to ffprobe executable
- TRANSCODER_CONVERT_PATH: Path to ImageMagick convert executable
- TRANSCODER_IDENTIFY_PATH: Path to ImageMagick identify executable
- TRANSCODER_CONCURRENCY: Default batch concurrency
- TRANSCODER_TRANSCODE_TIMEOUT: Maximum seconds per encode
- TRANSCODER_LOG_LEVEL / TRANSCODER_LOG_FORMAT / TRANSCODER_LOG_FILE
- TRANSCODER_PRESETS_FILE: YAML file with user presets
- TRANSCODER_CONFIG_PATH: Path to config file (overrides default location)
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from transcoder.config.env import EnvReader
from transcoder.config.models import (
    AppConfig,
    LoggingConfig,
    ProcessingConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".transcoder"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"
DEFAULT_PRESETS_FILE = DEFAULT_CONFIG_DIR / "presets.yaml"

# path -> (parsed dict, mtime)
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigError(ValueError):
    """Raised when the configuration file cannot be parsed or is invalid."""


def get_default_config_path() -> Path:
    """TRANSCODER_CONFIG_PATH if set, else ~/.transcoder/config.toml."""
    env_path = os.environ.get("TRANSCODER_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Parse a TOML config file into a dict.

    A missing file yields ``{}``. An unparseable one yields ``{}`` with a
    warning, or ConfigError when ``strict`` (an explicit --config). Parsed
    files are cached until their mtime changes.
    """
    if path is None:
        path = get_default_config_path()

    try:
        mtime = path.stat().st_mtime
    except FileNotFoundError:
        return {}

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == mtime:
            return cached[0]

        try:
            with path.open("rb") as f:
                result = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            if strict:
                raise ConfigError(f"Could not parse config file {path}: {e}") from e
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            return {}

        _config_cache[path] = (result, mtime)
        return result


def clear_config_cache() -> None:
    """Forget parsed config files."""
    with _config_cache_lock:
        _config_cache.clear()


def _pick(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _as_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def get_config(
    config_path: Path | None = None,
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    concurrency: int | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: Path | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> AppConfig:
    """Resolve the effective configuration.

    Keyword overrides are the command-line values; None means "not given".
    ``env_reader`` replaces os.environ in tests. Out-of-range values (for
    example ``concurrency = 0``) raise ConfigError when ``strict``;
    otherwise the affected sections fall back to defaults with a warning.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    tools_file = file_config.get("tools", {})
    processing_file = file_config.get("processing", {})
    logging_file_section = file_config.get("logging", {})

    tools = ToolPathsConfig(
        ffmpeg=_pick(
            ffmpeg_path,
            reader.get_path("TRANSCODER_FFMPEG_PATH"),
            _as_path(tools_file.get("ffmpeg")),
        ),
        ffprobe=_pick(
            ffprobe_path,
            reader.get_path("TRANSCODER_FFPROBE_PATH"),
            _as_path(tools_file.get("ffprobe")),
        ),
        convert=_pick(
            reader.get_path("TRANSCODER_CONVERT_PATH"),
            _as_path(tools_file.get("convert")),
        ),
        identify=_pick(
            reader.get_path("TRANSCODER_IDENTIFY_PATH"),
            _as_path(tools_file.get("identify")),
        ),
    )

    try:
        processing = ProcessingConfig(
            concurrency=_pick(
                concurrency,
                reader.get_int("TRANSCODER_CONCURRENCY"),
                processing_file.get("concurrency"),
                ProcessingConfig.concurrency,
            ),
            transcode_timeout=_pick(
                reader.get_float("TRANSCODER_TRANSCODE_TIMEOUT"),
                processing_file.get("transcode_timeout"),
            ),
            probe_timeout=_pick(
                processing_file.get("probe_timeout"),
                ProcessingConfig.probe_timeout,
            ),
        )
        logging_config = LoggingConfig(
            level=_pick(
                log_level,
                reader.get_str("TRANSCODER_LOG_LEVEL"),
                logging_file_section.get("level"),
                LoggingConfig.level,
            ),
            format=_pick(
                log_format,
                reader.get_str("TRANSCODER_LOG_FORMAT"),
                logging_file_section.get("format"),
                LoggingConfig.format,
            ),
            file=_pick(
                log_file,
                reader.get_path("TRANSCODER_LOG_FILE", must_exist=False),
                _as_path(logging_file_section.get("file")),
            ),
            include_stderr=bool(logging_file_section.get("include_stderr", False)),
        )
    except ValueError as e:
        if strict:
            raise ConfigError(str(e)) from e
        logger.warning("Invalid configuration, using defaults: %s", e)
        processing = ProcessingConfig()
        logging_config = LoggingConfig()

    presets_file = _pick(
        reader.get_path("TRANSCODER_PRESETS_FILE"),
        _as_path(file_config.get("presets_file")),
    )
    if presets_file is None and DEFAULT_PRESETS_FILE.exists():
        presets_file = DEFAULT_PRESETS_FILE

    return AppConfig(
        tools=tools,
        processing=processing,
        logging=logging_config,
        presets_file=presets_file,
    )
