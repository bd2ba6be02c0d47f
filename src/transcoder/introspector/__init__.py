"""Media introspection via ffprobe and ImageMagick identify."""

from transcoder.introspector.ffprobe import FFprobeIntrospector
from transcoder.introspector.identify import ImageIntrospector
from transcoder.introspector.interface import MediaIntrospectionError, MediaIntrospector
from transcoder.introspector.parsers import (
    metadata_duration,
    parse_ffprobe_output,
    parse_frame_rate,
)

__all__ = [
    "FFprobeIntrospector",
    "ImageIntrospector",
    "MediaIntrospectionError",
    "MediaIntrospector",
    "metadata_duration",
    "parse_ffprobe_output",
    "parse_frame_rate",
]
