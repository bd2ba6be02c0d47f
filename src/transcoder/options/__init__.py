"""Option models and resolution for video, audio and image transcodes."""

from transcoder.options.models import (
    WATERMARK_POSITIONS,
    AudioEffects,
    AudioSettings,
    CropSpec,
    ImageSettings,
    MediaType,
    ResizeSpec,
    Settings,
    ThumbnailSpec,
    TrimSpec,
    VideoSettings,
    WatermarkSpec,
)
from transcoder.options.resolver import (
    resolve_audio_settings,
    resolve_image_settings,
    resolve_video_settings,
)

__all__ = [
    "WATERMARK_POSITIONS",
    "AudioEffects",
    "AudioSettings",
    "CropSpec",
    "ImageSettings",
    "MediaType",
    "ResizeSpec",
    "Settings",
    "ThumbnailSpec",
    "TrimSpec",
    "VideoSettings",
    "WatermarkSpec",
    "resolve_audio_settings",
    "resolve_image_settings",
    "resolve_video_settings",
]
