"""End-to-end pipeline tests with fake ffmpeg, ffprobe and ImageMagick."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from transcoder.config.models import AppConfig, ToolPathsConfig
from transcoder.exceptions import ToolExecutionError, ValidationError
from transcoder.executor.events import ProgressEvent, StartEvent
from transcoder.executor.pipeline import (
    transcode_audio,
    transcode_image,
    transcode_responsive,
    transcode_video,
)

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="fake tools are shebang scripts"),
]


class TestVideoPipeline:
    """Tests for transcode_video()."""

    def test_transcode_with_metadata_and_thumbnails(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        """Output, probed metadata and thumbnails beside the output."""
        output = tmp_path / "out" / "clip.mp4"
        events: list[object] = []

        result = transcode_video(
            input_video,
            output,
            {"preset": "web", "thumbnails": {"count": 2}},
            config=fake_config,
            on_event=events.append,
        )

        assert result.output_path == output
        assert output.read_bytes() == b"fake media"
        assert "-c:v libx264" in result.command
        assert result.metadata is not None
        assert result.metadata["video"]["codec"] == "h264"
        assert result.metadata["format"]["duration"] == 10.0
        assert result.source_metadata is not None
        assert result.source_metadata["video"]["codec"] == "h264"
        assert result.thumbnails == [
            tmp_path / "out" / "clip-thumbnail-001.jpg",
            tmp_path / "out" / "clip-thumbnail-002.jpg",
        ]
        assert all(path.exists() for path in result.thumbnails)
        assert result.warnings == []
        assert result.degraded is False

        assert isinstance(events[0], StartEvent)
        assert any(isinstance(e, ProgressEvent) for e in events)
        assert result.events == events

    def test_outputs_in_one_directory_keep_their_own_thumbnails(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        out = tmp_path / "out"
        other = tmp_path / "other.mp4"
        other.write_bytes(input_video.read_bytes())
        options = {"thumbnails": {"count": 2}}

        first = transcode_video(input_video, out / "input.mp4", options, config=fake_config)
        second = transcode_video(other, out / "other.mp4", options, config=fake_config)

        assert [p.name for p in first.thumbnails] == [
            "input-thumbnail-001.jpg",
            "input-thumbnail-002.jpg",
        ]
        assert [p.name for p in second.thumbnails] == [
            "other-thumbnail-001.jpg",
            "other-thumbnail-002.jpg",
        ]
        assert all(p.parent == out and p.exists() for p in first.thumbnails + second.thumbnails)
        assert set(first.thumbnails).isdisjoint(second.thumbnails)

    def test_rerun_without_overwrite_keeps_existing_thumbnails(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        """Leftover thumbnails are reported, not replaced."""
        (tmp_path / "clip-thumbnail-001.jpg").write_bytes(b"earlier")

        result = transcode_video(
            input_video,
            tmp_path / "clip.mp4",
            {"thumbnails": {"count": 1}},
            config=fake_config,
        )

        assert result.output_path.exists()
        assert result.thumbnails is None
        assert "already exists" in result.warnings[0]
        assert (tmp_path / "clip-thumbnail-001.jpg").read_bytes() == b"earlier"

    def test_missing_watermark_image_degrades(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        """A missing watermark image is skipped and recorded."""
        result = transcode_video(
            input_video,
            tmp_path / "out.mp4",
            {"watermark": {"image": str(tmp_path / "logo.png")}},
            config=fake_config,
        )

        assert result.output_path.exists()
        assert result.degraded is True
        assert "Watermark image does not exist" in result.warnings[0]
        assert "overlay" not in result.command

    def test_encoder_failure(
        self,
        input_video: Path,
        tmp_path: Path,
        fake_ffmpeg: Callable[..., Path],
        fake_ffprobe: Callable[..., Path],
    ) -> None:
        config = AppConfig(
            tools=ToolPathsConfig(ffmpeg=fake_ffmpeg("fail"), ffprobe=fake_ffprobe())
        )

        with pytest.raises(ToolExecutionError) as exc_info:
            transcode_video(input_video, tmp_path / "out.mp4", config=config)

        assert exc_info.value.returncode == 3
        assert not (tmp_path / "out.mp4").exists()

    def test_timeout_from_config(
        self,
        input_video: Path,
        tmp_path: Path,
        fake_ffmpeg: Callable[..., Path],
        fake_ffprobe: Callable[..., Path],
    ) -> None:
        config = AppConfig(
            tools=ToolPathsConfig(ffmpeg=fake_ffmpeg("hang"), ffprobe=fake_ffprobe())
        )
        config.processing.transcode_timeout = 0.5

        with pytest.raises(ToolExecutionError, match="timed out"):
            transcode_video(input_video, tmp_path / "out.mp4", config=config)


class TestAudioPipeline:
    """Tests for transcode_audio()."""

    def test_normalized_audio(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        result = transcode_audio(
            input_video, tmp_path / "voice.mp3", {"normalize": True}, config=fake_config
        )

        assert "loudnorm=I=-16:TP=-1.5:LRA=11" in result.command
        assert result.metadata is not None
        assert result.metadata["audio"]["codec"] == "aac"

    def test_input_without_audio(
        self,
        input_video: Path,
        tmp_path: Path,
        fake_ffmpeg: Callable[..., Path],
        fake_ffprobe: Callable[..., Path],
    ) -> None:
        silent = {
            "format": {"duration": "4.0"},
            "streams": [{"codec_type": "video", "codec_name": "h264"}],
        }
        ffmpeg = fake_ffmpeg("ok")
        config = AppConfig(tools=ToolPathsConfig(ffmpeg=ffmpeg, ffprobe=fake_ffprobe(silent)))

        with pytest.raises(ValidationError, match="does not contain any audio streams"):
            transcode_audio(input_video, tmp_path / "out.mp3", config=config)

        assert not (tmp_path / "out.mp3").exists()


class TestImagePipeline:
    """Tests for transcode_image()."""

    def test_square_pad_uses_source_size(
        self, tmp_path: Path, fake_ffmpeg: Callable[..., Path], fake_identify: Path
    ) -> None:
        """identify supplies the source size and the output metadata."""
        source = tmp_path / "photo.jpg"
        source.write_bytes(b"jpeg")
        config = AppConfig(
            tools=ToolPathsConfig(
                convert=fake_ffmpeg("ok", name="convert"), identify=fake_identify
            )
        )

        result = transcode_image(
            source, tmp_path / "photo.png", {"square_pad": True}, config=config
        )

        assert "-resize 800x" in result.command
        assert result.metadata == {
            "width": 800,
            "height": 600,
            "format": "PNG",
            "size": len(b"fake media"),
        }


class TestResponsivePipeline:
    """Tests for transcode_responsive() with real pipelines."""

    def test_minimal_profile_set(
        self, input_video: Path, tmp_path: Path, fake_config: AppConfig
    ) -> None:
        result = transcode_responsive(
            input_video, tmp_path / "versions", profile_set="minimal", config=fake_config
        )

        assert result.failures == {}
        assert sorted(p.output_path.name for p in result.outputs.values()) == [
            "mobile-input.mp4",
            "web-input.mp4",
        ]
        assert all(p.output_path.exists() for p in result.outputs.values())
