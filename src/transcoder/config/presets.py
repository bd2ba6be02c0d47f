"""Preset and responsive-profile registry.

Presets are named bundles of settings tuned for a platform or quality
tier. The built-in tables are immutable; user presets loaded from a YAML
file produce a new registry layered over the built-ins.

YAML layout::

    video:
      my-preset:
        video_bitrate: 3000k
        width: 1280
    audio:
      podcast:
        audio_codec: libmp3lame
        audio_bitrate: 96k
    responsive:
      mine: [mobile, my-preset]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("video", "audio", "image")


class PresetError(Exception):
    """Error loading or validating a presets file."""


def _h264(**overrides: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "video_codec": "libx264",
        "audio_codec": "aac",
        "audio_bitrate": "128k",
        "preset": "medium",
        "profile": "main",
        "level": "4.0",
        "pixel_format": "yuv420p",
        "movflags": "+faststart",
    }
    base.update(overrides)
    return base


_INSTAGRAM = _h264(video_bitrate="3500k", width=1080, height=1080)

VIDEO_PRESETS: Mapping[str, Mapping[str, Any]] = {
    "instagram": _INSTAGRAM,
    "instagram-stories": {**_INSTAGRAM, "width": 1080, "height": 1920},
    "youtube-hd": _h264(
        video_bitrate="8000k",
        audio_bitrate="384k",
        preset="slow",
        profile="high",
        level="4.2",
        width=1920,
        height=1080,
        fps=30,
    ),
    "youtube-4k": _h264(
        video_bitrate="40000k",
        audio_bitrate="384k",
        preset="slow",
        profile="high",
        level="5.1",
        width=3840,
        height=2160,
        fps=30,
    ),
    "twitter": _h264(video_bitrate="5000k", width=1280, height=720, fps=30),
    "facebook": _h264(video_bitrate="4000k", width=1280, height=720, fps=30),
    "tiktok": _h264(video_bitrate="5000k", width=1080, height=1920, fps=30),
    "vimeo-hd": _h264(
        video_bitrate="10000k",
        audio_bitrate="320k",
        preset="slow",
        profile="high",
        level="4.2",
        width=1920,
        height=1080,
        fps=30,
    ),
    "web": _h264(video_bitrate="2500k", preset="fast", width=1280, height=720, fps=30),
    "mobile": _h264(
        video_bitrate="1000k",
        audio_bitrate="96k",
        preset="fast",
        profile="baseline",
        level="3.0",
        width=640,
        height=360,
        fps=30,
    ),
    "hd": _h264(
        video_bitrate="6000k",
        audio_bitrate="192k",
        profile="high",
        level="4.1",
        width=1920,
        height=1080,
        fps=30,
    ),
    "tablet": _h264(video_bitrate="2000k", level="3.1", width=1280, height=720, fps=30),
    "low-bandwidth": _h264(
        video_bitrate="500k",
        audio_bitrate="64k",
        preset="fast",
        profile="baseline",
        level="3.0",
        width=480,
        height=270,
        fps=24,
    ),
}

AUDIO_PRESETS: Mapping[str, Mapping[str, Any]] = {
    "audio-high": {"audio_codec": "aac", "audio_bitrate": "320k", "sample_rate": 48000},
    "audio-medium": {"audio_codec": "aac", "audio_bitrate": "192k", "sample_rate": 44100},
    "audio-low": {"audio_codec": "aac", "audio_bitrate": "96k", "sample_rate": 44100},
    "audio-voice": {
        "audio_codec": "aac",
        "audio_bitrate": "64k",
        "sample_rate": 22050,
        "channels": 1,
    },
    "mp3-high": {"audio_codec": "libmp3lame", "audio_bitrate": "320k", "sample_rate": 44100},
    "mp3-medium": {"audio_codec": "libmp3lame", "audio_bitrate": "192k", "sample_rate": 44100},
    "mp3-low": {"audio_codec": "libmp3lame", "audio_bitrate": "96k", "sample_rate": 44100},
}

IMAGE_PRESETS: Mapping[str, Mapping[str, Any]] = {
    "jpeg-high": {"format": "jpg", "quality": 95},
    "jpeg-medium": {"format": "jpg", "quality": 85},
    "jpeg-low": {"format": "jpg", "quality": 70},
    "webp-high": {"format": "webp", "quality": 90},
    "webp-medium": {"format": "webp", "quality": 80},
    "webp-low": {"format": "webp", "quality": 65},
    "png": {"format": "png"},
    "png-optimized": {"format": "png", "compression_level": 9, "optimize": True},
    "avif-high": {"format": "avif", "quality": 85},
    "avif-medium": {"format": "avif", "quality": 70},
    "thumbnail": {
        "format": "jpg",
        "quality": 80,
        "resize": {"width": 300, "height": 300, "fit": "inside"},
    },
    "social-media": {
        "format": "jpg",
        "quality": 90,
        "resize": {"width": 1200, "height": 630, "fit": "cover"},
    },
    "square": {"format": "png", "square_pad": True, "pad_color": "transparent"},
    "square-white": {"format": "jpg", "square_pad": True, "pad_color": "white"},
    "instagram-square": {
        "format": "jpg",
        "quality": 90,
        "square_pad": True,
        "pad_color": "white",
        "width": 1080,
        "height": 1080,
    },
}

RESPONSIVE_PROFILES: Mapping[str, tuple[str, ...]] = {
    "standard": ("mobile", "web", "hd"),
    "comprehensive": ("low-bandwidth", "mobile", "tablet", "web", "hd"),
    "minimal": ("mobile", "web"),
    "social": ("mobile", "instagram", "twitter", "facebook"),
    "professional": ("web", "vimeo-hd", "youtube-hd"),
}

# Output extension implied by a preset when the caller gives none.
PRESET_EXTENSIONS: Mapping[str, Mapping[str, str]] = {
    "video": {name: ".mp4" for name in VIDEO_PRESETS},
    "audio": {
        "audio-high": ".aac",
        "audio-medium": ".aac",
        "audio-low": ".aac",
        "audio-voice": ".aac",
        "mp3-high": ".mp3",
        "mp3-medium": ".mp3",
        "mp3-low": ".mp3",
    },
    "image": {
        name: "." + str(values.get("format", "jpg")) for name, values in IMAGE_PRESETS.items()
    },
}


def _freeze(table: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    return MappingProxyType(
        {name.casefold(): MappingProxyType(dict(values)) for name, values in table.items()}
    )


@dataclass(frozen=True)
class PresetRegistry:
    """Immutable lookup of presets by media type and name.

    Injected into the options resolver and the batch output-path rules so
    tests can substitute their own tables.
    """

    video: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: _freeze(VIDEO_PRESETS)
    )
    audio: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: _freeze(AUDIO_PRESETS)
    )
    image: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: _freeze(IMAGE_PRESETS)
    )
    responsive: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(RESPONSIVE_PROFILES))
    )
    extensions: Mapping[str, Mapping[str, str]] = field(
        default_factory=lambda: MappingProxyType(
            {k: MappingProxyType(dict(v)) for k, v in PRESET_EXTENSIONS.items()}
        )
    )

    def _table(self, media_type: str) -> Mapping[str, Mapping[str, Any]]:
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")
        return getattr(self, media_type)

    def get(self, media_type: str, name: str | None) -> Mapping[str, Any] | None:
        """Look up a preset by name (case-insensitive).

        Returns:
            The preset values, or None for a missing or unknown name.
        """
        if not name or not isinstance(name, str):
            return None
        return self._table(media_type).get(name.casefold())

    def names(self, media_type: str) -> list[str]:
        """List preset names for a media type."""
        return sorted(self._table(media_type))

    def get_profile_set(self, name: str | None) -> tuple[str, ...] | None:
        """Look up a responsive profile set by name (case-insensitive)."""
        if not name:
            return None
        return self.responsive.get(name.casefold())

    def output_extension(self, media_type: str, name: str | None) -> str | None:
        """Default output extension implied by a preset, if any."""
        if not name:
            return None
        return self.extensions.get(media_type, {}).get(name.casefold())

    def merged_with(self, data: Mapping[str, Any]) -> PresetRegistry:
        """Return a new registry with user presets layered over this one.

        Args:
            data: Mapping with optional "video", "audio", "image" and
                "responsive" sections.

        Raises:
            PresetError: If a section has the wrong shape.
        """
        tables: dict[str, Mapping[str, Mapping[str, Any]]] = {}
        for media_type in MEDIA_TYPES:
            section = data.get(media_type) or {}
            if not isinstance(section, Mapping) or not all(
                isinstance(v, Mapping) for v in section.values()
            ):
                raise PresetError(
                    f"'{media_type}' section must map preset names to settings"
                )
            merged = {**self._table(media_type), **_freeze(section)}
            tables[media_type] = MappingProxyType(merged)

        responsive_section = data.get("responsive") or {}
        if not isinstance(responsive_section, Mapping):
            raise PresetError("'responsive' section must map set names to lists")
        responsive = dict(self.responsive)
        for name, profiles in responsive_section.items():
            if not isinstance(profiles, list) or not profiles:
                raise PresetError(f"Responsive set '{name}' must be a non-empty list")
            responsive[str(name).casefold()] = tuple(str(p) for p in profiles)

        return PresetRegistry(
            video=tables["video"],
            audio=tables["audio"],
            image=tables["image"],
            responsive=MappingProxyType(responsive),
            extensions=self.extensions,
        )


def load_presets_file(path: Path, base: PresetRegistry | None = None) -> PresetRegistry:
    """Load user presets from a YAML file.

    Args:
        path: Path to the YAML file.
        base: Registry to layer over (default: built-in presets).

    Returns:
        New PresetRegistry containing built-in and user presets.

    Raises:
        PresetError: If the file cannot be read or has the wrong shape.
    """
    base = base or PresetRegistry()
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise PresetError(f"Presets file not found: {path}") from e
    except yaml.YAMLError as e:
        raise PresetError(f"Invalid YAML in presets file {path}: {e}") from e

    if not isinstance(data, dict):
        raise PresetError(f"Presets file must contain a mapping: {path}")

    registry = base.merged_with(data)
    logger.debug("Loaded user presets from %s", path)
    return registry


_default_registry: PresetRegistry | None = None


def get_default_registry() -> PresetRegistry:
    """Return the shared built-in registry (created on first use)."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PresetRegistry()
    return _default_registry
