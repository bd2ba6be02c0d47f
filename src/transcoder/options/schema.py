"""Pydantic models for validating caller option maps.

Option maps arrive from Python callers, the CLI and YAML preset files.
Each model accepts snake_case keys and their camelCase spellings
(``videoBitrate``, ``noiseReduction``, ``fadeOut``...). Values are
normalized here so the resolver can build settings records without
further checks.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from transcoder.core.time_utils import parse_timestamp
from transcoder.options.models import WATERMARK_POSITIONS

_BITRATE_PATTERN = re.compile(r"^\d+(?:\.\d+)?[kKmM]?$")


def _normalize_position(value: Any) -> Any:
    """Map camelCase anchors (bottomRight) to kebab-case (bottom-right)."""
    if not isinstance(value, str):
        return value
    text = re.sub(r"(?<=[a-z])([A-Z])", r"-\1", value.strip())
    return text.replace("_", "-").casefold()


def _keep_source_dimension(value: Any) -> Any:
    """Treat zero or negative dimensions as "keep the source value"."""
    if isinstance(value, int | float) and not isinstance(value, bool) and value <= 0:
        return None
    return value


def _check_bitrate(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not _BITRATE_PATTERN.match(value.strip()):
        raise ValueError(
            f"Invalid bitrate '{value}'. "
            "Must be a number optionally followed by k or M (e.g., '2500k')."
        )
    return value.strip()


class _OptionsModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WatermarkModel(_OptionsModel):
    """Watermark options: exactly one of image or text is used."""

    image: str | None = None
    text: str | None = None
    position: Literal[
        "top-left", "top-right", "bottom-left", "bottom-right", "center"
    ] = "bottom-right"
    opacity: float = Field(default=0.7, ge=0.0, le=1.0)
    margin: int = Field(default=10, ge=0)
    font_file: str | None = None
    font_size: int = Field(default=24, gt=0)
    font_color: str = "white"
    box_color: str | None = None

    @field_validator("position", mode="before")
    @classmethod
    def normalize_position(cls, v: Any) -> Any:
        """Accept topLeft/top_left/top-left spellings."""
        v = _normalize_position(v)
        if isinstance(v, str) and v not in WATERMARK_POSITIONS:
            raise ValueError(
                f"Invalid position '{v}'. "
                f"Must be one of: {', '.join(WATERMARK_POSITIONS)}"
            )
        return v

    @model_validator(mode="after")
    def require_image_or_text(self) -> WatermarkModel:
        """A watermark without image and text cannot be rendered."""
        if not self.image and not self.text:
            raise ValueError("Watermark must have either image or text")
        return self


class TrimModel(_OptionsModel):
    """Trim points as seconds or HH:MM:SS[.ms] strings."""

    start: float | None = None
    end: float | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> float | None:
        """Convert clock strings to seconds."""
        if v is None or v == "":
            return None
        return parse_timestamp(v)

    @model_validator(mode="after")
    def validate_range(self) -> TrimModel:
        """End is an absolute offset and must come after start."""
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError(
                f"Trim end ({self.end}s) must be after trim start ({self.start}s)"
            )
        return self


class AudioEffectsModel(_OptionsModel):
    """Audio effect options."""

    normalize: bool = False
    noise_reduction: float | None = None
    fade_in: float | None = Field(default=None, ge=0)
    fade_out: float | None = Field(default=None, ge=0)
    volume: float | None = Field(default=None, gt=0)

    @field_validator("noise_reduction")
    @classmethod
    def clamp_strength(cls, v: float | None) -> float | None:
        """Strength is clamped to [0, 1] rather than rejected."""
        if v is None:
            return None
        return min(1.0, max(0.0, v))


class ThumbnailModel(_OptionsModel):
    """Thumbnail options: interval mode (count) or explicit timestamps."""

    count: int = Field(default=3, ge=1, le=100)
    timestamps: tuple[float, ...] | None = None
    format: Literal["jpg", "jpeg", "png", "webp"] = "jpg"
    filename_pattern: str | None = None
    output_dir: str | None = None
    on_failure: Literal["abort", "continue"] = "abort"

    @model_validator(mode="before")
    @classmethod
    def accept_timestamp_flag(cls, data: Any) -> Any:
        """Accept ``timestamps: true`` with a separate ``timestampList``."""
        if not isinstance(data, dict) or not isinstance(data.get("timestamps"), bool):
            return data
        data = dict(data)
        listed = data.pop("timestampList", None) or data.pop("timestamp_list", None)
        data["timestamps"] = listed if data["timestamps"] else None
        return data

    @field_validator("timestamps", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> Any:
        """Convert each timestamp to seconds, keeping caller order."""
        if v is None:
            return None
        if isinstance(v, str | int | float):
            v = [v]
        timestamps = tuple(parse_timestamp(t) for t in v)
        if not timestamps:
            raise ValueError("timestamps must not be empty")
        return timestamps

    @field_validator("format", mode="before")
    @classmethod
    def lowercase_format(cls, v: Any) -> Any:
        """Formats are matched case-insensitively."""
        return v.casefold().lstrip(".") if isinstance(v, str) else v


class VideoOptionsModel(_OptionsModel):
    """Override map for a video transcode."""

    preset: str | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    video_bitrate: str | None = None
    audio_bitrate: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    fps: float | None = Field(default=None, gt=0)
    profile: str | None = None
    level: str | None = None
    pixel_format: str | None = None
    movflags: str | None = None
    threads: int | None = Field(default=None, ge=0)
    overwrite: bool | None = None
    watermark: WatermarkModel | None = None
    trim: TrimModel | None = None
    audio: AudioEffectsModel | None = None
    thumbnails: ThumbnailModel | None = None
    ffmpeg_args: str | None = None

    @field_validator("width", "height", "fps", mode="before")
    @classmethod
    def keep_source(cls, v: Any) -> Any:
        """-1 (or any non-positive value) keeps the source dimension."""
        return _keep_source_dimension(v)

    @field_validator("video_bitrate", "audio_bitrate", mode="before")
    @classmethod
    def validate_bitrate(cls, v: Any) -> Any:
        """Validate bitrate format."""
        return _check_bitrate(v)

    @field_validator("level", mode="before")
    @classmethod
    def level_as_text(cls, v: Any) -> Any:
        """Levels are often written as numbers (4.0, 41)."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v


class AudioOptionsModel(_OptionsModel):
    """Override map for an audio transcode.

    Effects are given at the top level, as in ``{"normalize": True,
    "fadeOut": 2}``.
    """

    preset: str | None = None
    audio_codec: str | None = None
    audio_bitrate: str | None = None
    sample_rate: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "sample_rate", "sampleRate", "audio_sample_rate", "audioSampleRate"
        ),
    )
    channels: int | None = Field(
        default=None,
        ge=1,
        le=8,
        validation_alias=AliasChoices(
            "channels", "audio_channels", "audioChannels"
        ),
    )
    normalize: bool | None = None
    noise_reduction: float | None = None
    fade_in: float | None = Field(default=None, ge=0)
    fade_out: float | None = Field(default=None, ge=0)
    volume: float | None = Field(default=None, gt=0)
    overwrite: bool | None = None
    ffmpeg_args: str | None = None

    @field_validator("audio_bitrate", mode="before")
    @classmethod
    def validate_bitrate(cls, v: Any) -> Any:
        """Validate bitrate format."""
        return _check_bitrate(v)

    @field_validator("noise_reduction")
    @classmethod
    def clamp_strength(cls, v: float | None) -> float | None:
        """Strength is clamped to [0, 1] rather than rejected."""
        if v is None:
            return None
        return min(1.0, max(0.0, v))


class ResizeModel(_OptionsModel):
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    fit: Literal["fill", "inside", "outside", "cover"] = "fill"


class CropModel(_OptionsModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)


class ImageOptionsModel(_OptionsModel):
    """Override map for an image conversion."""

    preset: str | None = None
    format: str | None = None
    quality: int | None = Field(default=None, ge=1, le=100)
    resize: ResizeModel | None = None
    rotate: float | None = None
    flip: Literal["horizontal", "vertical", "both"] | None = None
    crop: CropModel | None = None
    square_pad: bool | None = None
    pad_color: str | None = None
    pad_size: int | None = Field(default=None, ge=0)
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    optimize: bool | None = None
    strip_metadata: bool | None = None
    compression_level: int | None = Field(default=None, ge=0, le=9)
    overwrite: bool | None = None

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v: Any) -> Any:
        """Formats are lowercase without a leading dot; jpeg means jpg."""
        if not isinstance(v, str):
            return v
        v = v.casefold().lstrip(".")
        return "jpg" if v == "jpeg" else v

    @field_validator("width", "height", mode="before")
    @classmethod
    def keep_source(cls, v: Any) -> Any:
        """Non-positive values keep the source dimension."""
        return _keep_source_dimension(v)
