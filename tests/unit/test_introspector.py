"""Unit tests for ffprobe parsing and the introspectors."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from transcoder.exceptions import MediaIntrospectionError
from transcoder.introspector import (
    FFprobeIntrospector,
    ImageIntrospector,
    metadata_duration,
    parse_ffprobe_output,
    parse_frame_rate,
)

FFPROBE_RUN = "transcoder.introspector.ffprobe.run_command"
IDENTIFY_RUN = "transcoder.introspector.identify.run_command"


class TestParseFrameRate:
    """Tests for parse_frame_rate()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("30/1", 30.0),
            ("30000/1001", 29.97),
            ("25", 25.0),
            ("0/0", None),
            ("", None),
            (None, None),
        ],
    )
    def test_values(self, value: str | None, expected: float | None) -> None:
        assert parse_frame_rate(value) == expected


class TestParseFfprobeOutput:
    """Tests for parse_ffprobe_output()."""

    def test_video_file(self, ffprobe_json: str) -> None:
        metadata = parse_ffprobe_output(Path("input.mp4"), json.loads(ffprobe_json))

        assert metadata["format"]["duration"] == 10.0
        assert metadata["format"]["bitrate"] == 1200000
        assert metadata["video"]["codec"] == "h264"
        assert metadata["video"]["width"] == 640
        assert metadata["video"]["fps"] == 30.0
        assert metadata["audio"]["sample_rate"] == 44100
        assert metadata["audio"]["channels"] == 2

    def test_audio_only_file(self) -> None:
        data = {
            "format": {"duration": "N/A"},
            "streams": [{"codec_type": "audio", "codec_name": "mp3", "duration": "4.5"}],
        }

        metadata = parse_ffprobe_output(Path("a.mp3"), data)

        assert metadata["video"] is None
        assert metadata["format"]["filename"] == "a.mp3"
        assert metadata["format"]["duration"] is None
        assert metadata_duration(metadata) == 4.5

    def test_metadata_duration_empty(self) -> None:
        assert metadata_duration(None) is None
        assert metadata_duration({"format": {}, "video": None, "audio": None}) is None


class TestFFprobeIntrospector:
    """Tests for FFprobeIntrospector with run_command patched."""

    def test_get_metadata(self, input_video: Path, ffprobe_json: str) -> None:
        with patch(FFPROBE_RUN, return_value=(ffprobe_json, "", 0)) as run:
            metadata = FFprobeIntrospector("/opt/ffprobe", timeout=7).get_metadata(input_video)

        assert metadata["video"]["height"] == 360
        args = run.call_args.args[0]
        assert args[0] == "/opt/ffprobe"
        assert args[-1] == str(input_video)
        assert run.call_args.kwargs["timeout"] == 7

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MediaIntrospectionError, match="File not found"):
            FFprobeIntrospector().probe(tmp_path / "missing.mp4")

    @pytest.mark.parametrize(
        ("run_result", "message"),
        [
            (("", "moov atom not found", 1), "moov atom not found"),
            (("not json", "", 0), "Invalid ffprobe output"),
            (('{"streams": []}', "", 0), "Missing 'format' or 'streams'"),
        ],
    )
    def test_probe_failures(
        self, input_video: Path, run_result: tuple[str, str, int], message: str
    ) -> None:
        with patch(FFPROBE_RUN, return_value=run_result):
            with pytest.raises(MediaIntrospectionError, match=message):
                FFprobeIntrospector().probe(input_video)

    def test_timeout(self, input_video: Path) -> None:
        with patch(FFPROBE_RUN, side_effect=subprocess.TimeoutExpired("ffprobe", 60)):
            with pytest.raises(MediaIntrospectionError, match="timed out"):
                FFprobeIntrospector().probe(input_video)

    def test_duration_falls_back_to_format_query(self, input_video: Path) -> None:
        """A file whose full probe has no duration uses the format query."""
        no_duration = json.dumps({"format": {}, "streams": []})
        with patch(FFPROBE_RUN, side_effect=[(no_duration, "", 0), ("12.5\n", "", 0)]):
            assert FFprobeIntrospector().get_duration(input_video) == 12.5

    def test_duration_unparseable(self, input_video: Path) -> None:
        with patch(FFPROBE_RUN, side_effect=[("", "broken", 1), ("N/A\n", "", 0)]):
            with pytest.raises(MediaIntrospectionError, match="Could not determine duration"):
                FFprobeIntrospector().get_duration(input_video)


class TestImageIntrospector:
    """Tests for ImageIntrospector with run_command patched."""

    def test_dimensions_use_first_frame(self, tmp_path: Path) -> None:
        image = tmp_path / "anim.gif"
        with patch(IDENTIFY_RUN, return_value=("320 240", "", 0)) as run:
            assert ImageIntrospector().get_dimensions(image) == (320, 240)
        assert run.call_args.args[0][-1] == f"{image}[0]"

    def test_metadata(self, tmp_path: Path) -> None:
        image = tmp_path / "photo.png"
        image.write_bytes(b"12345")
        with patch(IDENTIFY_RUN, return_value=("800 600 PNG", "", 0)):
            metadata = ImageIntrospector().get_metadata(image)
        assert metadata == {"width": 800, "height": 600, "format": "PNG", "size": 5}

    def test_garbage_output(self, tmp_path: Path) -> None:
        with patch(IDENTIFY_RUN, return_value=("", "", 0)):
            with pytest.raises(MediaIntrospectionError, match="Unexpected identify output"):
                ImageIntrospector().get_dimensions(tmp_path / "x.png")

    def test_identify_failure(self, tmp_path: Path) -> None:
        with patch(IDENTIFY_RUN, return_value=("", "improper image header", 1)):
            with pytest.raises(MediaIntrospectionError, match="improper image header"):
                ImageIntrospector().get_metadata(tmp_path / "x.png")
