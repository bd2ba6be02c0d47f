"""Unit tests for the click command line."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from transcoder.cli import main
from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.options import load_options_file, merge_options, parse_set_options
from transcoder.cli.output import ProgressTracker, exit_code_for
from transcoder.config.loader import ConfigError
from transcoder.config.presets import PresetError
from transcoder.exceptions import (
    ConflictError,
    NotFoundError,
    ToolExecutionError,
    ToolLaunchError,
    ToolTimeoutError,
    TranscodeCancelledError,
    ValidationError,
)
from transcoder.tools.paths import TOOL_NAMES


@pytest.fixture(autouse=True)
def _restore_logging(restore_root_logger: logging.Logger) -> None:
    """Every invocation of main reconfigures the root logger."""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestParseSetOptions:
    """Tests for parse_set_options()."""

    def test_scalars_and_nesting(self) -> None:
        options = parse_set_options(
            ["width=1280", "watermark.text=Demo", "watermark.opacity=0.5", "normalize=true"]
        )
        assert options == {
            "width": 1280,
            "watermark": {"text": "Demo", "opacity": 0.5},
            "normalize": True,
        }

    def test_lists_and_empty_values(self) -> None:
        options = parse_set_options(["thumbnails.timestamps=[1, 5]", "custom_args="])
        assert options == {"thumbnails": {"timestamps": [1, 5]}, "custom_args": ""}

    def test_unparseable_yaml_is_kept_as_text(self) -> None:
        assert parse_set_options(["text=a: b: c"]) == {"text": "a: b: c"}

    @pytest.mark.parametrize("pair", ["width", "=1280"])
    def test_malformed_pair(self, pair: str) -> None:
        with pytest.raises(click.BadParameter, match="KEY=VALUE"):
            parse_set_options([pair])

    def test_value_and_section_conflict(self) -> None:
        with pytest.raises(click.BadParameter, match="both as a value and as a section"):
            parse_set_options(["watermark=none", "watermark.text=x"])


class TestOptionsFile:
    """Tests for load_options_file() and merge_options()."""

    def test_load_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "opts.yaml"
        path.write_text("preset: web\nwatermark:\n  text: Demo\n", encoding="utf-8")
        assert load_options_file(path) == {"preset": "web", "watermark": {"text": "Demo"}}

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "opts.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(click.BadParameter, match="must contain a mapping"):
            load_options_file(path)

    def test_merge_nested(self) -> None:
        merged = merge_options(
            {"preset": "web", "watermark": {"text": "A", "position": "center"}},
            None,
            {"watermark": {"text": "B"}, "width": 640},
        )
        assert merged == {
            "preset": "web",
            "watermark": {"text": "B", "position": "center"},
            "width": 640,
        }


class TestExitCodeFor:
    """Tests for exit_code_for()."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (ValidationError("bad"), ExitCode.VALIDATION_ERROR),
            (ConfigError("bad"), ExitCode.CONFIG_ERROR),
            (PresetError("bad"), ExitCode.CONFIG_ERROR),
            (NotFoundError("/x.mp4"), ExitCode.TARGET_NOT_FOUND),
            (ConflictError("/x.mp4"), ExitCode.OUTPUT_EXISTS),
            (ToolLaunchError("ffmpeg", "missing"), ExitCode.TOOL_NOT_AVAILABLE),
            (TranscodeCancelledError("cancelled"), ExitCode.INTERRUPTED),
            (ToolTimeoutError("timed out"), ExitCode.OPERATION_FAILED),
            (ToolExecutionError("exit 1", 1), ExitCode.OPERATION_FAILED),
            (RuntimeError("other"), ExitCode.GENERAL_ERROR),
        ],
    )
    def test_mapping(self, error: Exception, expected: ExitCode) -> None:
        assert exit_code_for(error) == expected


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_counters_and_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        tracker = ProgressTracker(total=2)
        tracker.start_file()
        tracker.complete_file()
        tracker.update_percent(42.0)
        tracker.finish()

        assert tracker.completed == 1
        assert tracker.active == 0
        err = capsys.readouterr().err
        assert "Processing: 0/2 [1 active]" in err
        assert "Encoding:  42.0%" in err

    def test_disabled(self, capsys: pytest.CaptureFixture[str]) -> None:
        tracker = ProgressTracker(enabled=False)
        tracker.start_file()
        tracker.finish()
        assert capsys.readouterr().err == ""


class TestPresetsCommands:
    """Tests for the presets command group."""

    def test_list_json(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--log-level", "error", "presets", "list", "--json"])

        assert result.exit_code == 0
        listing = json.loads(result.stdout)
        assert set(listing) == {"video", "audio", "image"}
        assert "instagram" in listing["video"]

    def test_list_one_type(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["presets", "list", "--type", "audio"])

        assert result.exit_code == 0
        assert result.output.startswith("audio:\n")
        assert "  mp3-high" in result.output
        assert "video:" not in result.output

    def test_show(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["presets", "show", "instagram"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["video_bitrate"] == "3500k"

    def test_show_unknown(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["presets", "show", "nope", "--type", "image"])

        assert result.exit_code == ExitCode.PRESET_NOT_FOUND
        assert "No image preset named 'nope'" in result.output

    def test_profiles(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["presets", "profiles"])

        assert result.exit_code == 0
        assert "minimal: mobile, web" in result.output


class TestTranscodeCommand:
    """Tests for failures the transcode command reports before encoding."""

    def test_missing_input(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main, ["transcode", str(tmp_path / "missing.mp4"), str(tmp_path / "out.mp4")]
        )

        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert "Input file does not exist" in result.output

    def test_unknown_media_type(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main, ["transcode", str(tmp_path / "notes.txt"), str(tmp_path / "out.bin")]
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "use --type" in result.output

    def test_invalid_option(self, runner: CliRunner, input_video: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            main,
            [
                "transcode", str(input_video), str(tmp_path / "out.mp4"),
                "--set", "watermark.position=center", "--json",
            ],
        )  # fmt: skip

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert '"code": "VALIDATION_ERROR"' in result.output

    def test_existing_output(self, runner: CliRunner, input_video: Path, tmp_path: Path) -> None:
        existing = tmp_path / "out.mp4"
        existing.write_bytes(b"old")

        result = runner.invoke(main, ["transcode", str(input_video), str(existing)])

        assert result.exit_code == ExitCode.OUTPUT_EXISTS
        assert existing.read_bytes() == b"old"

    def test_malformed_set(self, runner: CliRunner, input_video: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            main, ["transcode", str(input_video), str(tmp_path / "o.mp4"), "--set", "width"]
        )
        assert result.exit_code == 2

    def test_bad_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text("[processing\nconcurrency = ", encoding="utf-8")

        result = runner.invoke(main, ["--config", str(config), "presets", "list"])

        assert result.exit_code == ExitCode.CONFIG_ERROR


class TestBatchCommand:
    """Tests for the batch command with inputs that fail validation."""

    def test_options_must_name_a_media_type(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main, ["batch", str(tmp_path), "-o", str(tmp_path / "out"), "--set", "width=640"]
        )
        assert result.exit_code == 2
        assert "video., audio. or image." in result.output

    def test_all_files_failing(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main,
            ["batch", str(tmp_path / "missing.mp4"), "-o", str(tmp_path / "out")],
        )

        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "Processed 1 of 1 files: 0 ok, 0 degraded, 1 failed" in result.output
        assert "FAILED missing.mp4: Input file does not exist" in result.output

    def test_json_payload(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main,
            [
                "--log-file", str(tmp_path / "batch.log"), "batch", str(tmp_path / "song.xyz"),
                "-o", str(tmp_path / "out"), "--json",
            ],
        )  # fmt: skip

        assert result.exit_code == ExitCode.OPERATION_FAILED
        payload = json.loads(result.stdout)
        assert payload["summary"] == {"ok": 0, "degraded": 0, "failed": 1}
        assert payload["cancelled"] is False
        assert "Unsupported file type" in payload["failed"][0]["error"]


class TestDoctorCommand:
    """Tests for the doctor command with tool lookup patched."""

    def test_all_tools_found(self, runner: CliRunner) -> None:
        found = {name: Path(f"/usr/bin/{name}") for name in TOOL_NAMES}
        with patch("transcoder.cli.doctor.check_tools", return_value=found):
            result = runner.invoke(main, ["doctor"])

        assert result.exit_code == 0
        assert "ffmpeg     ok       /usr/bin/ffmpeg" in result.output

    def test_missing_ffprobe(self, runner: CliRunner) -> None:
        found = {"ffmpeg": Path("/usr/bin/ffmpeg"), "ffprobe": None}
        found.update(convert=None, identify=None)
        with patch("transcoder.cli.doctor.check_tools", return_value=found):
            result = runner.invoke(main, ["doctor", "--json"])

        assert result.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert json.loads(result.stdout)["ffprobe"] is None
