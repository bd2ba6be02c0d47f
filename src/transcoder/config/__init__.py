"""Settings (config.toml, TRANSCODER_* variables, options) and presets.

Preset tables live in transcoder.config.presets and are consumed as an
immutable, injectable registry.
"""

from transcoder.config.env import EnvReader
from transcoder.config.loader import (
    ConfigError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from transcoder.config.models import (
    AppConfig,
    LoggingConfig,
    ProcessingConfig,
    ToolPathsConfig,
)
from transcoder.config.presets import (
    PresetError,
    PresetRegistry,
    get_default_registry,
    load_presets_file,
)

__all__ = [
    # Models
    "AppConfig",
    "LoggingConfig",
    "ProcessingConfig",
    "ToolPathsConfig",
    # Loader
    "ConfigError",
    "EnvReader",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    # Presets
    "PresetError",
    "PresetRegistry",
    "get_default_registry",
    "load_presets_file",
]
