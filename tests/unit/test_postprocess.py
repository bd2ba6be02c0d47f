"""Unit tests for thumbnails and the post-processing chain."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from transcoder.exceptions import MediaIntrospectionError, ThumbnailError
from transcoder.options.models import ThumbnailSpec
from transcoder.postprocess import PostProcessingChain, ThumbnailGenerator
from transcoder.postprocess.thumbnails import (
    ThumbnailResult,
    thumbnail_filename,
    thumbnail_instants,
)

RUN_COMMAND = "transcoder.postprocess.thumbnails.run_command"


def fake_capture(fail_at: set[int] | None = None):
    """run_command stand-in that writes the target file unless told to fail."""
    calls: list[list[str]] = []

    def side_effect(args: list[Any], timeout: float = 120) -> tuple[str, str, int]:
        calls.append([str(a) for a in args])
        if fail_at and len(calls) in fail_at:
            return "", "frame extraction failed\nConversion failed!", 1
        Path(str(args[-1])).write_bytes(b"jpeg")
        return "", "", 0

    side_effect.calls = calls  # type: ignore[attr-defined]
    return side_effect


class TestThumbnailInstants:
    """Tests for thumbnail_instants()."""

    def test_interval_mode(self) -> None:
        """count instants are spread evenly, excluding the ends."""
        assert thumbnail_instants(ThumbnailSpec(count=3), 20.0) == [5.0, 10.0, 15.0]

    def test_explicit_timestamps_are_verbatim(self) -> None:
        spec = ThumbnailSpec(timestamps=(7.0, 1.5))
        assert thumbnail_instants(spec, None) == [7.0, 1.5]

    def test_unknown_duration(self) -> None:
        with pytest.raises(ThumbnailError, match="duration is unknown"):
            thumbnail_instants(ThumbnailSpec(), None)


class TestThumbnailFilename:
    """Tests for thumbnail_filename()."""

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("thumbnail-%03d", "thumbnail-001.jpg"),
            ("shot_%d", "shot_1.jpg"),
            ("poster", "poster-1.jpg"),
            ("a-%02d-%02d", "a-01-%02d.jpg"),
        ],
    )
    def test_patterns(self, pattern: str, expected: str) -> None:
        assert thumbnail_filename(pattern, 1, "jpg") == expected


class TestThumbnailGenerator:
    """Tests for ThumbnailGenerator with run_command patched."""

    def test_captures_each_instant(self, tmp_path: Path) -> None:
        capture = fake_capture()
        generator = ThumbnailGenerator("ffmpeg", timeout=5)

        with patch(RUN_COMMAND, side_effect=capture):
            result = generator.generate(
                Path("in.mp4"), ThumbnailSpec(count=2, format="png"), tmp_path / "thumbs",
                duration=9.0,
            )

        assert [p.name for p in result.paths] == ["thumbnail-001.png", "thumbnail-002.png"]
        assert result.warnings == []
        assert capture.calls[0] == [
            "ffmpeg", "-ss", "3", "-i", "in.mp4", "-vframes", "1", "-an",
            "-q:v", "2", "-f", "image2", "-n", str(tmp_path / "thumbs" / "thumbnail-001.png"),
        ]  # fmt: skip

    def test_abort_on_first_failure(self, tmp_path: Path) -> None:
        """The default policy raises on the first failed capture."""
        capture = fake_capture(fail_at={2})

        with patch(RUN_COMMAND, side_effect=capture):
            with pytest.raises(ThumbnailError, match="Conversion failed!"):
                ThumbnailGenerator().generate(
                    Path("in.mp4"), ThumbnailSpec(count=3), tmp_path, duration=8.0
                )

        assert len(capture.calls) == 2

    def test_continue_keeps_successful_captures(self, tmp_path: Path) -> None:
        capture = fake_capture(fail_at={2})
        spec = ThumbnailSpec(count=3, on_failure="continue")

        with patch(RUN_COMMAND, side_effect=capture):
            result = ThumbnailGenerator().generate(Path("in.mp4"), spec, tmp_path, duration=8.0)

        assert [p.name for p in result.paths] == ["thumbnail-001.jpg", "thumbnail-003.jpg"]
        assert len(result.warnings) == 1

    def test_continue_with_every_capture_failing(self, tmp_path: Path) -> None:
        spec = ThumbnailSpec(count=2, on_failure="continue")

        with patch(RUN_COMMAND, side_effect=fake_capture(fail_at={1, 2})):
            with pytest.raises(ThumbnailError, match="All 2 thumbnail captures failed"):
                ThumbnailGenerator().generate(Path("in.mp4"), spec, tmp_path, duration=8.0)

    def test_timeout_and_launch_errors(self, tmp_path: Path) -> None:
        generator = ThumbnailGenerator()
        target = tmp_path / "t.jpg"

        with patch(RUN_COMMAND, side_effect=subprocess.TimeoutExpired("ffmpeg", 5)):
            with pytest.raises(ThumbnailError, match="timed out"):
                generator.capture(Path("in.mp4"), 1.0, target)

        with patch(RUN_COMMAND, side_effect=FileNotFoundError("ffmpeg")):
            with pytest.raises(ThumbnailError, match="Failed to start"):
                generator.capture(Path("in.mp4"), 1.0, target)

    def test_pattern_from_spec_or_default(self, tmp_path: Path) -> None:
        """An explicit filename_pattern wins over the caller's default."""
        with patch(RUN_COMMAND, side_effect=fake_capture()):
            named = ThumbnailGenerator().generate(
                Path("in.mp4"), ThumbnailSpec(count=1), tmp_path,
                duration=4.0, default_pattern="clip-thumbnail-%03d",
            )
            explicit = ThumbnailGenerator().generate(
                Path("in.mp4"), ThumbnailSpec(count=1, filename_pattern="poster-%d"), tmp_path,
                duration=4.0, default_pattern="clip-thumbnail-%03d",
            )

        assert [p.name for p in named.paths] == ["clip-thumbnail-001.jpg"]
        assert [p.name for p in explicit.paths] == ["poster-1.jpg"]

    def test_existing_thumbnail_needs_overwrite(self, tmp_path: Path) -> None:
        target = tmp_path / "t.jpg"
        target.write_bytes(b"old")
        capture = fake_capture()

        with patch(RUN_COMMAND, side_effect=capture):
            with pytest.raises(ThumbnailError, match="already exists"):
                ThumbnailGenerator().capture(Path("in.mp4"), 1.0, target)
            assert capture.calls == []

            ThumbnailGenerator().capture(Path("in.mp4"), 1.0, target, overwrite=True)

        assert "-y" in capture.calls[0]
        assert target.read_bytes() == b"jpeg"

    def test_missing_output_file(self, tmp_path: Path) -> None:
        with patch(RUN_COMMAND, return_value=("", "", 0)):
            with pytest.raises(ThumbnailError, match="not created"):
                ThumbnailGenerator().capture(Path("in.mp4"), 1.0, tmp_path / "t.jpg")


class FakeIntrospector:
    def __init__(self, metadata: dict[str, Any] | None = None, error: Exception | None = None):
        self.metadata = metadata
        self.error = error
        self.paths: list[Path] = []

    def get_metadata(self, path: Path) -> dict[str, Any]:
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.metadata or {}


class FakeThumbnailer:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[Path, Path, float | None]] = []
        self.patterns: list[tuple[str, bool]] = []

    def generate(
        self, input_path, spec, output_dir, *, duration=None, default_pattern="", overwrite=False
    ):
        self.calls.append((input_path, output_dir, duration))
        self.patterns.append((default_pattern, overwrite))
        if self.error is not None:
            raise self.error
        return ThumbnailResult(paths=[output_dir / "thumbnail-001.jpg"])


class TestPostProcessingChain:
    """Tests for PostProcessingChain."""

    def test_metadata_and_thumbnails(self, tmp_path: Path) -> None:
        """Metadata comes from the output; thumbnails from the source."""
        output = tmp_path / "out.mp4"
        introspector = FakeIntrospector({"format": {"duration": 12.0}})
        thumbnailer = FakeThumbnailer()
        chain = PostProcessingChain(introspector, thumbnailer)

        result = chain.run(
            output, source_path=Path("/in/src.mp4"), thumbnails=ThumbnailSpec(), duration=30.0
        )

        assert introspector.paths == [output]
        assert result.metadata == {"format": {"duration": 12.0}}
        assert thumbnailer.calls == [(Path("/in/src.mp4"), tmp_path, 30.0)]
        assert result.thumbnails == [tmp_path / "thumbnail-001.jpg"]
        assert thumbnailer.patterns == [("out-thumbnail-%03d", False)]
        assert result.warnings == []

    def test_thumbnails_from_output_use_output_duration(self, tmp_path: Path) -> None:
        output = tmp_path / "out.mp4"
        thumbnailer = FakeThumbnailer()
        chain = PostProcessingChain(FakeIntrospector({"format": {"duration": 12.0}}), thumbnailer)

        chain.run(
            output,
            thumbnails=ThumbnailSpec(output_dir=str(tmp_path / "t")),
            duration=30.0,
            overwrite=True,
        )

        assert thumbnailer.calls == [(output, tmp_path / "t", 12.0)]
        assert thumbnailer.patterns == [("out-thumbnail-%03d", True)]

    def test_metadata_failure_is_a_warning(self, tmp_path: Path) -> None:
        chain = PostProcessingChain(FakeIntrospector(error=MediaIntrospectionError("bad probe")))

        result = chain.run(tmp_path / "out.mp4")

        assert result.metadata is None
        assert result.warnings == ["Metadata extraction failed: bad probe"]

    def test_thumbnail_failure_is_a_warning(self, tmp_path: Path) -> None:
        chain = PostProcessingChain(
            FakeIntrospector({}), FakeThumbnailer(error=ThumbnailError("no frames"))
        )

        result = chain.run(tmp_path / "out.mp4", thumbnails=ThumbnailSpec())

        assert result.thumbnails is None
        assert result.warnings == ["Thumbnail generation failed: no frames"]

    def test_no_thumbnail_spec_skips_capture(self, tmp_path: Path) -> None:
        thumbnailer = FakeThumbnailer()
        PostProcessingChain(FakeIntrospector({}), thumbnailer).run(tmp_path / "out.mp4")
        assert thumbnailer.calls == []
