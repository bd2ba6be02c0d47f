"""Options resolution: defaults < named preset < caller overrides.

The resolver is pure. The same overrides, registry and defaults always
produce an equal settings record, and nothing passed in is modified.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from transcoder.config.presets import PresetRegistry, get_default_registry
from transcoder.exceptions import ValidationError
from transcoder.options.models import (
    AudioEffects,
    AudioSettings,
    CropSpec,
    ImageSettings,
    ResizeSpec,
    ThumbnailSpec,
    TrimSpec,
    VideoSettings,
    WatermarkSpec,
)
from transcoder.options.schema import (
    AudioOptionsModel,
    ImageOptionsModel,
    VideoOptionsModel,
)

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)

_AUDIO_EFFECT_FIELDS = ("normalize", "noise_reduction", "fade_in", "fade_out", "volume")

# Fields where an explicit None means "use the default", not "omit".
_REQUIRED_VIDEO_FIELDS = frozenset({"video_codec", "audio_codec", "threads", "overwrite"})
_REQUIRED_AUDIO_FIELDS = frozenset({"audio_codec", "overwrite"})
_OPTIONAL_IMAGE_FIELDS = frozenset({"rotate", "flip", "width", "height", "compression_level"})


def _format_validation_error(error: PydanticValidationError, source: str) -> ValidationError:
    """Turn the first pydantic error into a user-facing ValidationError."""
    errors = error.errors()
    if not errors:
        return ValidationError(f"Invalid {source}: {error}")
    first = errors[0]
    loc = ".".join(str(x) for x in first.get("loc", ()))
    msg = str(first.get("msg", error)).removeprefix("Value error, ")
    field = str(first["loc"][0]) if first.get("loc") else None
    if loc:
        return ValidationError(f"Invalid {source}: {loc}: {msg}", field=field)
    return ValidationError(f"Invalid {source}: {msg}", field=field)


def _validate(model: type[_M], data: Mapping[str, Any], source: str) -> _M:
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        raise _format_validation_error(e, source) from e


def _layer_preset(
    model: type[_M],
    media_type: str,
    overrides: Mapping[str, Any] | None,
    registry: PresetRegistry,
) -> tuple[dict[str, Any], str | None]:
    """Validate overrides and layer them over the named preset.

    Returns:
        Tuple of (merged option values keyed by field name, name of the
        preset that was applied or None).
    """
    caller = _validate(model, overrides or {}, "options").model_dump(exclude_unset=True)

    preset_name = caller.get("preset")
    preset_values = registry.get(media_type, preset_name)
    if preset_values is None:
        if preset_name:
            logger.debug(
                "'%s' is not a %s preset, treating it as an encoder setting",
                preset_name,
                media_type,
            )
        return caller, None

    preset_model = _validate(model, preset_values, f"preset '{preset_name}'")
    merged = {**preset_model.model_dump(exclude_unset=True), **caller}

    # The profile name and the encoder speed share the "preset" key. The
    # caller's value named a profile, so restore the profile's own speed.
    if "preset" in preset_values:
        merged["preset"] = preset_values["preset"]
    else:
        merged.pop("preset", None)

    logger.debug("Applied %s preset '%s'", media_type, preset_name)
    return merged, preset_name


def _build(cls: type, data: Mapping[str, Any] | None) -> Any:
    if data is None:
        return None
    return cls(**data)


def resolve_video_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    defaults: VideoSettings | None = None,
) -> VideoSettings:
    """Resolve a video override map into concrete settings.

    Args:
        overrides: Caller options (snake_case or camelCase keys). A
            "preset" key naming a known video preset applies it.
        registry: Preset registry (default: built-in presets).
        defaults: Base settings (default: VideoSettings()).

    Returns:
        Fully resolved VideoSettings.

    Raises:
        ValidationError: If an option or the named preset is invalid,
            including a watermark with neither image nor text.
    """
    registry = registry or get_default_registry()
    defaults = defaults or VideoSettings()
    merged, _ = _layer_preset(VideoOptionsModel, "video", overrides, registry)

    values: dict[str, Any] = {}
    for key, value in merged.items():
        if key == "watermark":
            values[key] = _build(WatermarkSpec, value)
        elif key == "trim":
            values[key] = _build(TrimSpec, value)
        elif key == "audio":
            values[key] = _build(AudioEffects, value)
        elif key == "thumbnails":
            values[key] = _build(ThumbnailSpec, value)
        elif key in _REQUIRED_VIDEO_FIELDS and value is None:
            continue
        else:
            values[key] = value
    return dataclasses.replace(defaults, **values)


def resolve_audio_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    defaults: AudioSettings | None = None,
) -> AudioSettings:
    """Resolve an audio override map into concrete settings.

    Effect keys (normalize, noise_reduction, fade_in, fade_out, volume)
    are collected into AudioSettings.effects.

    Raises:
        ValidationError: If an option or the named preset is invalid.
    """
    registry = registry or get_default_registry()
    defaults = defaults or AudioSettings()
    merged, _ = _layer_preset(AudioOptionsModel, "audio", overrides, registry)
    # Audio settings carry no encoder speed
    merged.pop("preset", None)

    effect_values = {
        key: merged.pop(key) for key in _AUDIO_EFFECT_FIELDS if key in merged
    }
    if effect_values.get("normalize") is None:
        effect_values.pop("normalize", None)
    for key in _REQUIRED_AUDIO_FIELDS:
        if key in merged and merged[key] is None:
            del merged[key]

    effects = dataclasses.replace(defaults.effects, **effect_values)
    return dataclasses.replace(defaults, effects=effects, **merged)


def resolve_image_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    defaults: ImageSettings | None = None,
) -> ImageSettings:
    """Resolve an image override map into concrete settings.

    Raises:
        ValidationError: If an option or the named preset is invalid.
    """
    registry = registry or get_default_registry()
    defaults = defaults or ImageSettings()
    merged, _ = _layer_preset(ImageOptionsModel, "image", overrides, registry)
    merged.pop("preset", None)

    values: dict[str, Any] = {}
    for key, value in merged.items():
        if key == "resize":
            values[key] = _build(ResizeSpec, value)
        elif key == "crop":
            values[key] = _build(CropSpec, value)
        elif value is None and key not in _OPTIONAL_IMAGE_FIELDS:
            continue
        else:
            values[key] = value
    return dataclasses.replace(defaults, **values)
