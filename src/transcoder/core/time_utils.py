"""Timestamp parsing and formatting helpers."""

import re

from transcoder.core.formatting import format_number

_CLOCK_PATTERN = re.compile(r"^(\d+):([0-5]?\d):([0-5]?\d(?:\.\d+)?)$")


def parse_timestamp(value: float | int | str) -> float:
    """Convert a timestamp to seconds.

    Accepts plain seconds (int, float or numeric string) and clock strings
    in HH:MM:SS or HH:MM:SS.ms form.

    Args:
        value: Timestamp to convert.

    Returns:
        Seconds as a float.

    Raises:
        ValueError: If the value is negative or not a recognizable timestamp.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        match = _CLOCK_PATTERN.match(text)
        if match:
            hours, minutes, secs = match.groups()
            seconds = int(hours) * 3600 + int(minutes) * 60 + float(secs)
        else:
            try:
                seconds = float(text)
            except ValueError:
                raise ValueError(f"Invalid timestamp: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"Timestamp must not be negative: {value!r}")
    return seconds


def format_seconds(seconds: float) -> str:
    """Format seconds for an ffmpeg time argument ("3", "2.5")."""
    return format_number(seconds)


def format_clock(seconds: float) -> str:
    """Format seconds as HH:MM:SS.mmm for display."""
    total_ms = int(round(seconds * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, ms = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"
