"""Output path rules for batch processing.

The output name is ``prefix + input stem + suffix + extension``. The
extension comes from, in order: the explicit batch extension, the preset
named in the options, audio codec inference, and the per-type default.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from transcoder.config.presets import PresetRegistry, get_default_registry
from transcoder.scanner.discovery import normalize_extension

DEFAULT_OUTPUT_EXTENSIONS: Mapping[str, str] = {
    "video": ".mp4",
    "audio": ".mp3",
    "image": ".jpg",
}

# Checked in order; the first fragment found in the codec name wins.
AUDIO_CODEC_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ("mp3", ".mp3"),
    ("aac", ".aac"),
    ("vorbis", ".ogg"),
    ("flac", ".flac"),
    ("pcm", ".wav"),
    ("wav", ".wav"),
)

_AUDIO_EFFECT_KEYS = frozenset(
    {
        "normalize",
        "noise_reduction",
        "noiseReduction",
        "fade_in",
        "fadeIn",
        "fade_out",
        "fadeOut",
        "volume",
    }
)


def _option(options: Mapping[str, Any], snake: str, camel: str) -> Any:
    value = options.get(snake)
    return value if value is not None else options.get(camel)


def infer_audio_extension(codec: str | None) -> str | None:
    """Extension matching an audio codec name, if recognized."""
    if not codec:
        return None
    codec = codec.casefold()
    for fragment, extension in AUDIO_CODEC_EXTENSIONS:
        if fragment in codec:
            return extension
    return None


def output_extension(
    media_type: str,
    input_path: Path,
    options: Mapping[str, Any] | None = None,
    *,
    explicit: str | None = None,
    registry: PresetRegistry | None = None,
) -> str:
    """Pick the output extension for a file.

    For audio, options that only apply effects (no codec) keep the input
    extension; otherwise the codec decides, falling back to .mp3.
    """
    if explicit:
        return normalize_extension(explicit)

    options = options or {}
    registry = registry or get_default_registry()
    preset_extension = registry.output_extension(media_type, options.get("preset"))
    if preset_extension:
        return preset_extension

    if media_type == "audio":
        codec = _option(options, "audio_codec", "audioCodec")
        if not codec and _AUDIO_EFFECT_KEYS.intersection(options):
            return input_path.suffix
        return infer_audio_extension(codec) or DEFAULT_OUTPUT_EXTENSIONS["audio"]

    if media_type == "image":
        image_format = options.get("format")
        if isinstance(image_format, str) and image_format.strip():
            return normalize_extension("jpg" if image_format.casefold() == "jpeg" else image_format)

    return DEFAULT_OUTPUT_EXTENSIONS.get(media_type, input_path.suffix)


def output_path_for(
    input_path: Path,
    output_dir: Path,
    media_type: str,
    options: Mapping[str, Any] | None = None,
    *,
    prefix: str = "",
    suffix: str = "",
    extension: str | None = None,
    registry: PresetRegistry | None = None,
) -> Path:
    """Build the output path for one batch input."""
    ext = output_extension(
        media_type, input_path, options, explicit=extension, registry=registry
    )
    return output_dir / f"{prefix}{input_path.stem}{suffix}{ext}"
