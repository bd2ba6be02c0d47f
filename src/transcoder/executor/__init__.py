"""Command synthesis, process supervision and single-file pipelines."""

from transcoder.executor.audio import build_audio_command, build_audio_filters
from transcoder.executor.command import build_video_command
from transcoder.executor.image import build_image_command
from transcoder.executor.interface import FilterSpec, TempAssetScope, TranscodeCommand
from transcoder.executor.pipeline import (
    PipelineResult,
    ResponsiveResult,
    transcode_audio,
    transcode_image,
    transcode_responsive,
    transcode_video,
)
from transcoder.executor.supervisor import (
    CancellationToken,
    ProcessSupervisor,
    SupervisorOutcome,
    SupervisorState,
)

__all__ = [
    "CancellationToken",
    "FilterSpec",
    "PipelineResult",
    "ProcessSupervisor",
    "ResponsiveResult",
    "SupervisorOutcome",
    "SupervisorState",
    "TempAssetScope",
    "TranscodeCommand",
    "build_audio_command",
    "build_audio_filters",
    "build_image_command",
    "build_video_command",
    "transcode_audio",
    "transcode_image",
    "transcode_responsive",
    "transcode_video",
]
