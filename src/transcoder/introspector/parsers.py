"""Parsing helpers for ffprobe JSON output."""

from __future__ import annotations

from pathlib import Path
from typing import Any


def _to_float(value: Any) -> float | None:
    if value in (None, "", "N/A"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None


def parse_frame_rate(value: str | None) -> float | None:
    """Parse an ffprobe rational frame rate such as "30000/1001".

    Returns:
        Frames per second rounded to three decimals, or None.
    """
    if not value:
        return None
    numerator, _, denominator = value.partition("/")
    num = _to_float(numerator)
    den = _to_float(denominator) if denominator else 1.0
    if num is None or not den:
        return None
    return round(num / den, 3)


def _first_stream(streams: list[dict[str, Any]], codec_type: str) -> dict[str, Any] | None:
    for stream in streams:
        if stream.get("codec_type") == codec_type:
            return stream
    return None


def parse_ffprobe_output(path: Path, data: dict[str, Any]) -> dict[str, Any]:
    """Reduce ffprobe JSON to format, first video and first audio stream.

    Args:
        path: Probed file (used when ffprobe omits the filename).
        data: Parsed output of ``ffprobe -show_format -show_streams``.

    Returns:
        Dictionary with "format", "video" and "audio" keys; "video" and
        "audio" are None when the file has no such stream.
    """
    fmt = data.get("format", {})
    streams = data.get("streams", [])

    metadata: dict[str, Any] = {
        "format": {
            "filename": fmt.get("filename", str(path)),
            "format_name": fmt.get("format_name"),
            "duration": _to_float(fmt.get("duration")),
            "size": _to_int(fmt.get("size")),
            "bitrate": _to_int(fmt.get("bit_rate")),
        },
        "video": None,
        "audio": None,
    }

    video = _first_stream(streams, "video")
    if video is not None:
        metadata["video"] = {
            "codec": video.get("codec_name"),
            "profile": video.get("profile"),
            "width": _to_int(video.get("width")),
            "height": _to_int(video.get("height")),
            "bitrate": _to_int(video.get("bit_rate")),
            "fps": parse_frame_rate(video.get("r_frame_rate")),
            "pixel_format": video.get("pix_fmt"),
            "color_space": video.get("color_space"),
            "duration": _to_float(video.get("duration")),
            "aspect_ratio": video.get("display_aspect_ratio"),
        }

    audio = _first_stream(streams, "audio")
    if audio is not None:
        metadata["audio"] = {
            "codec": audio.get("codec_name"),
            "sample_rate": _to_int(audio.get("sample_rate")),
            "channels": _to_int(audio.get("channels")),
            "channel_layout": audio.get("channel_layout"),
            "bitrate": _to_int(audio.get("bit_rate")),
            "duration": _to_float(audio.get("duration")),
        }

    return metadata


def metadata_duration(metadata: dict[str, Any] | None) -> float | None:
    """Best duration from parsed metadata: container, then video, then audio."""
    if not metadata:
        return None
    candidates = [
        (metadata.get("format") or {}).get("duration"),
        (metadata.get("video") or {}).get("duration"),
        (metadata.get("audio") or {}).get("duration"),
    ]
    for value in candidates:
        if value:
            return float(value)
    return None
