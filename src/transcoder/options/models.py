"""Resolved settings records.

One frozen dataclass per media type. Instances are produced by
transcoder.options.resolver after override validation and are never
mutated afterwards, so a single record can be shared between threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MediaType = Literal["video", "audio", "image"]

WatermarkPosition = Literal[
    "top-left", "top-right", "bottom-left", "bottom-right", "center"
]
WATERMARK_POSITIONS: tuple[str, ...] = (
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
    "center",
)

ThumbnailFailurePolicy = Literal["abort", "continue"]


@dataclass(frozen=True)
class WatermarkSpec:
    """Image or text overlay burned into the video."""

    image: str | None = None
    text: str | None = None
    position: WatermarkPosition = "bottom-right"
    opacity: float = 0.7
    margin: int = 10
    font_file: str | None = None
    font_size: int = 24
    font_color: str = "white"
    box_color: str | None = None


@dataclass(frozen=True)
class TrimSpec:
    """Cut points in seconds.

    Both values are offsets into the original media; end is absolute,
    not relative to start.
    """

    start: float | None = None
    end: float | None = None

    @property
    def span(self) -> float | None:
        """Length of the kept section when both ends are known."""
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


@dataclass(frozen=True)
class AudioEffects:
    """Audio filters, applied in field order."""

    normalize: bool = False
    noise_reduction: float | None = None
    fade_in: float | None = None
    fade_out: float | None = None
    volume: float | None = None

    def is_empty(self) -> bool:
        return (
            not self.normalize
            and not self.noise_reduction
            and not self.fade_in
            and not self.fade_out
            and (self.volume is None or self.volume == 1.0)
        )


@dataclass(frozen=True)
class ThumbnailSpec:
    """Still frames captured after a successful video transcode.

    Attributes:
        count: Number of evenly spaced frames (interval mode).
        timestamps: Explicit capture times in seconds; overrides count.
        format: Image format and file extension (jpg, png, webp).
        filename_pattern: Name stem with a printf-style index such as
            ``poster-%03d``; the index starts at 1. Unset, thumbnails
            are named after the transcoded file
            (``<output stem>-thumbnail-%03d``) so files sharing an
            output directory keep separate thumbnails.
        output_dir: Directory for the images (default: beside the output).
        on_failure: "abort" discards every thumbnail on the first failed
            capture; "continue" keeps the ones that succeeded.
    """

    count: int = 3
    timestamps: tuple[float, ...] | None = None
    format: str = "jpg"
    filename_pattern: str | None = None
    output_dir: str | None = None
    on_failure: ThumbnailFailurePolicy = "abort"


@dataclass(frozen=True)
class ResizeSpec:
    width: int | None = None
    height: int | None = None
    fit: Literal["fill", "inside", "outside", "cover"] = "fill"


@dataclass(frozen=True)
class CropSpec:
    width: int
    height: int
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class VideoSettings:
    """Fully resolved settings for one video transcode.

    width, height and fps are None when the source value is kept.
    """

    video_codec: str = "libx264"
    audio_codec: str = "aac"
    video_bitrate: str | None = "1500k"
    audio_bitrate: str | None = "128k"
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    preset: str | None = "medium"
    profile: str | None = "main"
    level: str | None = "4.0"
    pixel_format: str | None = "yuv420p"
    movflags: str | None = "+faststart"
    threads: int = 0
    overwrite: bool = False
    watermark: WatermarkSpec | None = None
    trim: TrimSpec | None = None
    audio: AudioEffects | None = None
    thumbnails: ThumbnailSpec | None = None
    ffmpeg_args: str | None = None

    media_type: MediaType = "video"


@dataclass(frozen=True)
class AudioSettings:
    """Fully resolved settings for one audio transcode."""

    audio_codec: str = "aac"
    audio_bitrate: str | None = "192k"
    sample_rate: int | None = 44100
    channels: int | None = 2
    effects: AudioEffects = AudioEffects()
    overwrite: bool = False
    ffmpeg_args: str | None = None

    media_type: MediaType = "audio"


@dataclass(frozen=True)
class ImageSettings:
    """Fully resolved settings for one image conversion."""

    format: str = "jpg"
    quality: int = 85
    resize: ResizeSpec | None = None
    rotate: float | None = None
    flip: Literal["horizontal", "vertical", "both"] | None = None
    crop: CropSpec | None = None
    square_pad: bool = False
    pad_color: str = "transparent"
    pad_size: int = 0
    width: int | None = None
    height: int | None = None
    optimize: bool = True
    strip_metadata: bool = False
    compression_level: int | None = None
    overwrite: bool = False

    media_type: MediaType = "image"


Settings = VideoSettings | AudioSettings | ImageSettings
