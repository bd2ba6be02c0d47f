"""Unit tests for configuration loading, environment reading and presets."""

from pathlib import Path

import pytest

from transcoder.config import (
    AppConfig,
    ConfigError,
    EnvReader,
    LoggingConfig,
    PresetError,
    PresetRegistry,
    ProcessingConfig,
    clear_config_cache,
    get_config,
    load_config_file,
    load_presets_file,
)


@pytest.fixture(autouse=True)
def _fresh_config_cache() -> None:
    clear_config_cache()


@pytest.fixture
def no_user_presets(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "transcoder.config.loader.DEFAULT_PRESETS_FILE", tmp_path / "no-presets.yaml"
    )


class TestEnvReader:
    """Tests for EnvReader."""

    def test_typed_values(self) -> None:
        """Values are converted to the requested type."""
        reader = EnvReader(env={"A": "4", "B": "2.5", "C": "Yes", "D": "text"})

        assert reader.get_int("A") == 4
        assert reader.get_float("B") == 2.5
        assert reader.get_bool("C") is True
        assert reader.get_str("D") == "text"
        assert reader.get_str("MISSING", "fallback") == "fallback"

    def test_invalid_number_returns_default(self) -> None:
        """Unparseable numbers fall back to the default."""
        reader = EnvReader(env={"A": "four"})
        assert reader.get_int("A", 2) == 2
        assert reader.get_float("A") is None

    def test_path_must_exist(self, tmp_path: Path) -> None:
        """Missing paths are ignored unless must_exist is False."""
        missing = tmp_path / "missing"
        reader = EnvReader(env={"P": str(missing)})

        assert reader.get_path("P") is None
        assert reader.get_path("P", must_exist=False) == missing


class TestConfigModels:
    """Tests for configuration dataclass validation."""

    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.processing.concurrency == 2
        assert config.processing.transcode_timeout is None
        assert config.logging.level == "info"

    def test_invalid_values(self) -> None:
        """Out-of-range values are rejected."""
        with pytest.raises(ValueError, match="concurrency"):
            ProcessingConfig(concurrency=0)
        with pytest.raises(ValueError, match="transcode_timeout"):
            ProcessingConfig(transcode_timeout=-1)
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")


class TestLoadConfigFile:
    """Tests for load_config_file()."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "none.toml") == {}

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Parse errors are ignored unless strict."""
        path = tmp_path / "bad.toml"
        path.write_text("[processing\nconcurrency = ", encoding="utf-8")

        assert load_config_file(path) == {}
        with pytest.raises(ConfigError, match="Could not parse"):
            load_config_file(tmp_path / "bad.toml", strict=True)


@pytest.mark.usefixtures("no_user_presets")
class TestGetConfig:
    """Tests for get_config() precedence."""

    def test_defaults_without_sources(self, tmp_path: Path) -> None:
        config = get_config(tmp_path / "none.toml", env_reader=EnvReader(env={}))
        assert config == AppConfig()

    def test_file_values(self, tmp_path: Path) -> None:
        """Values from the TOML file are applied."""
        path = tmp_path / "config.toml"
        path.write_text(
            '[processing]\nconcurrency = 6\ntranscode_timeout = 900\n'
            '[logging]\nlevel = "debug"\nformat = "json"\n',
            encoding="utf-8",
        )

        config = get_config(path, env_reader=EnvReader(env={}))

        assert config.processing.concurrency == 6
        assert config.processing.transcode_timeout == 900
        assert config.logging.level == "debug"
        assert config.logging.format == "json"

    def test_precedence_cli_over_env_over_file(self, tmp_path: Path) -> None:
        """CLI beats environment, which beats the file."""
        path = tmp_path / "config.toml"
        path.write_text("[processing]\nconcurrency = 6\n", encoding="utf-8")
        env = EnvReader(env={"TRANSCODER_CONCURRENCY": "4", "TRANSCODER_LOG_LEVEL": "warning"})

        assert get_config(path, env_reader=env).processing.concurrency == 4
        config = get_config(path, concurrency=8, log_level="error", env_reader=env)
        assert config.processing.concurrency == 8
        assert config.logging.level == "error"

    def test_tool_paths_from_env(self, tmp_path: Path) -> None:
        """Existing tool paths from the environment are used."""
        ffmpeg = tmp_path / "ffmpeg"
        ffmpeg.write_text("", encoding="utf-8")
        env = EnvReader(env={"TRANSCODER_FFMPEG_PATH": str(ffmpeg)})

        config = get_config(tmp_path / "none.toml", env_reader=env)

        assert config.tools.ffmpeg == ffmpeg
        assert config.tools.ffprobe is None

    def test_invalid_value_strict_and_lenient(self, tmp_path: Path) -> None:
        """Invalid values fall back to defaults unless strict."""
        path = tmp_path / "config.toml"
        path.write_text("[processing]\nconcurrency = 0\n", encoding="utf-8")

        assert get_config(path, env_reader=EnvReader(env={})).processing.concurrency == 2
        with pytest.raises(ConfigError, match="concurrency"):
            get_config(path, env_reader=EnvReader(env={}), strict=True)

    def test_presets_file_from_config(self, tmp_path: Path) -> None:
        """presets_file in the config file is honored."""
        presets = tmp_path / "presets.yaml"
        path = tmp_path / "config.toml"
        path.write_text(f'presets_file = "{presets}"\n', encoding="utf-8")

        assert get_config(path, env_reader=EnvReader(env={})).presets_file == presets


class TestPresetRegistry:
    """Tests for PresetRegistry and user preset files."""

    def test_builtin_lookup(self) -> None:
        """Built-in presets are found case-insensitively."""
        registry = PresetRegistry()

        assert registry.get("video", "YouTube-HD")["width"] == 1920
        assert registry.get("video", "nope") is None
        assert registry.get("video", None) is None
        assert "instagram" in registry.names("video")
        assert registry.get_profile_set("standard") is not None
        assert registry.output_extension("audio", "mp3-high") == ".mp3"

    def test_unknown_media_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown media type"):
            PresetRegistry().get("document", "pdf")

    def test_merged_with_layers_user_presets(self) -> None:
        """User presets are added and override built-ins without mutating them."""
        base = PresetRegistry()
        merged = base.merged_with(
            {
                "video": {"web": {"width": 1024}, "mine": {"video_bitrate": "900k"}},
                "responsive": {"pair": ["mobile", "mine"]},
            }
        )

        assert merged.get("video", "web") == {"width": 1024}
        assert merged.get("video", "mine") == {"video_bitrate": "900k"}
        assert merged.get_profile_set("pair") == ("mobile", "mine")
        assert base.get("video", "mine") is None
        assert base.get("video", "web")["width"] != 1024

    def test_merged_with_rejects_bad_shapes(self) -> None:
        with pytest.raises(PresetError):
            PresetRegistry().merged_with({"video": {"web": "fast"}})
        with pytest.raises(PresetError):
            PresetRegistry().merged_with({"responsive": {"empty": []}})

    def test_load_presets_file(self, tmp_path: Path) -> None:
        """A YAML file is parsed and layered over the built-ins."""
        path = tmp_path / "presets.yaml"
        path.write_text(
            "audio:\n  podcast:\n    audio_codec: libmp3lame\n    audio_bitrate: 96k\n",
            encoding="utf-8",
        )

        registry = load_presets_file(path)

        assert registry.get("audio", "podcast") == {
            "audio_codec": "libmp3lame",
            "audio_bitrate": "96k",
        }
        assert registry.get("video", "instagram") is not None

    def test_load_presets_file_errors(self, tmp_path: Path) -> None:
        """Missing files, bad YAML and non-mappings raise PresetError."""
        with pytest.raises(PresetError, match="not found"):
            load_presets_file(tmp_path / "missing.yaml")

        bad = tmp_path / "bad.yaml"
        bad.write_text("video: [unclosed", encoding="utf-8")
        with pytest.raises(PresetError, match="Invalid YAML"):
            load_presets_file(bad)

        listing = tmp_path / "list.yaml"
        listing.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(PresetError, match="mapping"):
            load_presets_file(listing)
