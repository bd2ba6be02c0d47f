"""Video command synthesis.

Compiles resolved VideoSettings into an ffmpeg argument vector. The
argument order matters to ffmpeg and is fixed:

    [-ss start] -i input [-i watermark] [-t span | -to end]
    -c:v codec -c:a codec [-b:v rate] [-b:a rate]
    [-vf chain | -filter_complex graph -map ...] [-af chain] [-r fps]
    -preset p -profile:v p -level l -pix_fmt f -movflags f -threads n
    -progress pipe:1 (-y | -n) [custom args...] output
"""

from __future__ import annotations

import logging
from pathlib import Path

from transcoder.core.formatting import format_number
from transcoder.core.time_utils import format_seconds
from transcoder.executor.audio import build_audio_filters
from transcoder.executor.interface import (
    FilterSpec,
    TempAssetScope,
    TranscodeCommand,
    parse_custom_args,
)
from transcoder.executor.watermark import WatermarkPlan, plan_watermark
from transcoder.options.models import TrimSpec, VideoSettings

logger = logging.getLogger(__name__)

VIDEO_OUTPUT_PAD = "[vout]"
AUDIO_OUTPUT_PAD = "[aout]"


def scale_filter(width: int | None, height: int | None) -> str | None:
    """Scale filter for the requested dimensions.

    Both given scales exactly; one given keeps the aspect ratio; neither
    returns None.
    """
    if width and height:
        return f"scale={width}:{height}"
    if width:
        return f"scale={width}:-1"
    if height:
        return f"scale=-1:{height}"
    return None


def trim_input_args(trim: TrimSpec | None) -> list[str]:
    """Arguments placed before -i (fast input seek)."""
    if trim is None or trim.start is None:
        return []
    return ["-ss", format_seconds(trim.start)]


def trim_output_args(trim: TrimSpec | None) -> list[str]:
    """Arguments placed after the inputs.

    The end point is an absolute offset into the source. Input seeking
    resets timestamps to zero, so with a start the kept span is passed
    as a duration rather than an end time.
    """
    if trim is None or trim.end is None:
        return []
    span = trim.span
    if span is not None:
        return ["-t", format_seconds(span)]
    return ["-to", format_seconds(trim.end)]


def effective_duration(trim: TrimSpec | None, duration: float | None) -> float | None:
    """Duration of the output after trimming, if it can be known."""
    if trim is None:
        return duration
    start = trim.start or 0.0
    end = trim.end if trim.end is not None else duration
    if end is None:
        return None
    return max(0.0, end - start)


def build_filter_graph(
    video_chain: list[str],
    plan: WatermarkPlan,
    audio_filters: list[str],
) -> str:
    """Build a -filter_complex graph merging the watermark image.

    The main video is pad [0:v] and the watermark image [1:v]; the graph
    ends in [vout], plus [aout] when audio filters are present.
    """
    segments: list[str] = []

    base = "[0:v]"
    if video_chain:
        segments.append(f"[0:v]{','.join(video_chain)}[base]")
        base = "[base]"

    mark = "[1:v]"
    if plan.image_filter:
        segments.append(f"[1:v]{plan.image_filter}[wm]")
        mark = "[wm]"

    segments.append(f"{base}{mark}{plan.filter}{VIDEO_OUTPUT_PAD}")

    if audio_filters:
        segments.append(f"[0:a]{','.join(audio_filters)}{AUDIO_OUTPUT_PAD}")

    return ";".join(segments)


def build_video_command(
    settings: VideoSettings,
    input_path: Path,
    output_path: Path,
    *,
    duration: float | None = None,
    ffmpeg: str = "ffmpeg",
    assets: TempAssetScope | None = None,
) -> TranscodeCommand:
    """Build the ffmpeg command for a video transcode.

    Args:
        settings: Resolved video settings.
        input_path: Source video.
        output_path: Destination file.
        duration: Source duration in seconds, used to place the audio
            fade-out. None degrades the fade-out (no start offset).
        ffmpeg: ffmpeg executable.
        assets: Scope for temporary files (text watermark content).

    Returns:
        TranscodeCommand with the argument vector and filter spec.
    """
    warnings: list[str] = []
    trim = settings.trim

    plan = plan_watermark(settings.watermark, assets=assets) if settings.watermark else None
    if plan is not None:
        warnings.extend(plan.warnings)
    complex_graph = plan is not None and plan.needs_complex_graph

    args: list[str] = [ffmpeg]
    args.extend(trim_input_args(trim))
    args.extend(["-i", str(input_path)])
    extra_inputs: tuple[str, ...] = ()
    if complex_graph:
        extra_inputs = (plan.image_input,)
        args.extend(["-i", plan.image_input])
    args.extend(trim_output_args(trim))

    args.extend(["-c:v", settings.video_codec, "-c:a", settings.audio_codec])
    if settings.video_bitrate:
        args.extend(["-b:v", settings.video_bitrate])
    if settings.audio_bitrate:
        args.extend(["-b:a", settings.audio_bitrate])

    video_chain: list[str] = []
    scale = scale_filter(settings.width, settings.height)
    if scale:
        video_chain.append(scale)

    audio_filters, audio_warnings = build_audio_filters(
        settings.audio, effective_duration(trim, duration)
    )
    warnings.extend(audio_warnings)

    if complex_graph:
        graph = build_filter_graph(video_chain, plan, audio_filters)
        args.extend(["-filter_complex", graph, "-map", VIDEO_OUTPUT_PAD])
        args.extend(["-map", AUDIO_OUTPUT_PAD if audio_filters else "0:a?"])
        video_filters = [*video_chain]
        if plan.image_filter:
            video_filters.append(plan.image_filter)
        video_filters.append(plan.filter)
    else:
        if plan is not None and plan.filter:
            video_chain.append(plan.filter)
        if video_chain:
            args.extend(["-vf", ",".join(video_chain)])
        if audio_filters:
            args.extend(["-af", ",".join(audio_filters)])
        video_filters = video_chain

    if settings.fps:
        args.extend(["-r", format_number(settings.fps)])
    if settings.preset:
        args.extend(["-preset", settings.preset])
    if settings.profile:
        args.extend(["-profile:v", settings.profile])
    if settings.level:
        args.extend(["-level", settings.level])
    if settings.pixel_format:
        args.extend(["-pix_fmt", settings.pixel_format])
    if settings.movflags:
        args.extend(["-movflags", settings.movflags])
    args.extend(["-threads", str(settings.threads)])
    args.extend(["-progress", "pipe:1"])
    args.append("-y" if settings.overwrite else "-n")

    custom, warning = parse_custom_args(settings.ffmpeg_args)
    if warning:
        warnings.append(warning)
    args.extend(custom)
    args.append(str(output_path))

    filters = FilterSpec(
        video_filters=tuple(video_filters),
        audio_filters=tuple(audio_filters),
        uses_complex_graph=complex_graph,
        extra_inputs=extra_inputs,
        warnings=tuple(warnings),
    )
    logger.debug(
        "Built video command",
        extra={
            "complex_graph": complex_graph,
            "video_filters": len(video_filters),
            "audio_filters": len(audio_filters),
        },
    )
    return TranscodeCommand(args=tuple(args), filters=filters, warnings=tuple(warnings))
