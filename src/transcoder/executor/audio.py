"""Audio effect filters and audio-only ffmpeg commands."""

from __future__ import annotations

import logging
from pathlib import Path

from transcoder.core.formatting import format_number
from transcoder.core.time_utils import format_seconds
from transcoder.executor.interface import FilterSpec, TranscodeCommand, parse_custom_args
from transcoder.options.models import AudioEffects, AudioSettings

logger = logging.getLogger(__name__)

LOUDNORM_FILTER = "loudnorm=I=-16:TP=-1.5:LRA=11"

# afftdn noise reduction amount range and noise floor (dB)
NOISE_REDUCTION_FLOOR = 0.01
NOISE_REDUCTION_CEILING = 0.97
NOISE_FLOOR_DB = -60

MIN_VOLUME = 0.1
MAX_VOLUME = 10.0


def noise_reduction_amount(strength: float) -> float:
    """Map a 0-1 strength onto the afftdn amount range.

    Strength is clamped to [0, 1] first, so 0.5 maps to 0.49.
    """
    strength = min(1.0, max(0.0, strength))
    return NOISE_REDUCTION_FLOOR + strength * (
        NOISE_REDUCTION_CEILING - NOISE_REDUCTION_FLOOR
    )


def build_audio_filters(
    effects: AudioEffects | None,
    duration: float | None = None,
) -> tuple[list[str], list[str]]:
    """Build the audio filter chain for a set of effects.

    Filters are emitted in a fixed order: normalization, noise reduction,
    fade-in, fade-out, volume.

    Args:
        effects: Requested effects (None for no effects).
        duration: Media duration in seconds, used to place the fade-out.

    Returns:
        Tuple of (filters, warnings). A fade-out without a known duration
        is emitted without a start offset and reported as a warning.
    """
    filters: list[str] = []
    warnings: list[str] = []
    if effects is None:
        return filters, warnings

    if effects.normalize:
        filters.append(LOUDNORM_FILTER)

    if effects.noise_reduction:
        amount = noise_reduction_amount(effects.noise_reduction)
        filters.append(f"afftdn=nr={format_number(amount)}:nf={NOISE_FLOOR_DB}")

    if effects.fade_in:
        filters.append(f"afade=t=in:st=0:d={format_seconds(effects.fade_in)}")

    if effects.fade_out:
        length = format_seconds(effects.fade_out)
        if duration is not None and duration > 0:
            start = max(0.0, duration - effects.fade_out)
            filters.append(f"afade=t=out:st={format_seconds(start)}:d={length}")
        else:
            warning = "Duration unknown: fade-out applied without a start offset"
            logger.warning(warning)
            warnings.append(warning)
            filters.append(f"afade=t=out:d={length}")

    if effects.volume is not None:
        volume = min(MAX_VOLUME, max(MIN_VOLUME, effects.volume))
        if volume != 1.0:
            filters.append(f"volume={format_number(volume)}")

    return filters, warnings


def build_audio_command(
    settings: AudioSettings,
    input_path: Path,
    output_path: Path,
    *,
    duration: float | None = None,
    ffmpeg: str = "ffmpeg",
) -> TranscodeCommand:
    """Build the ffmpeg command for an audio transcode.

    Argument order: -i input, -c:a, -b:a, -ar, -ac, -af, -vn,
    -progress pipe:1, -y/-n, custom arguments, output.

    Args:
        settings: Resolved audio settings.
        input_path: Source file (audio or video with an audio stream).
        output_path: Destination file.
        duration: Source duration in seconds, if known.
        ffmpeg: ffmpeg executable.

    Returns:
        TranscodeCommand with the argument vector and filter spec.
    """
    args: list[str] = [ffmpeg, "-i", str(input_path), "-c:a", settings.audio_codec]
    if settings.audio_bitrate:
        args.extend(["-b:a", settings.audio_bitrate])
    if settings.sample_rate:
        args.extend(["-ar", str(settings.sample_rate)])
    if settings.channels:
        args.extend(["-ac", str(settings.channels)])

    audio_filters, warnings = build_audio_filters(settings.effects, duration)
    if audio_filters:
        args.extend(["-af", ",".join(audio_filters)])

    args.append("-vn")
    args.extend(["-progress", "pipe:1"])
    args.append("-y" if settings.overwrite else "-n")

    custom, warning = parse_custom_args(settings.ffmpeg_args)
    if warning:
        warnings.append(warning)
    args.extend(custom)
    args.append(str(output_path))

    filters = FilterSpec(audio_filters=tuple(audio_filters), warnings=tuple(warnings))
    return TranscodeCommand(args=tuple(args), filters=filters, warnings=tuple(warnings))
