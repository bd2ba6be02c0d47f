"""Declarative media transcoding orchestrator.

Resolves user options against presets, synthesizes ffmpeg/ImageMagick
command lines, supervises the external tools, runs best-effort
post-processing and fans the whole pipeline out over batches of files.
"""

from transcoder.exceptions import (
    ConflictError,
    NotFoundError,
    PostProcessWarning,
    ToolExecutionError,
    ToolLaunchError,
    TranscoderError,
    ValidationError,
)
from transcoder.executor.pipeline import (
    transcode_audio,
    transcode_image,
    transcode_responsive,
    transcode_video,
)
from transcoder.jobs.scheduler import BatchScheduler

__version__ = "0.4.0"

__all__ = [
    "BatchScheduler",
    "ConflictError",
    "NotFoundError",
    "PostProcessWarning",
    "ToolExecutionError",
    "ToolLaunchError",
    "TranscoderError",
    "ValidationError",
    "transcode_audio",
    "transcode_image",
    "transcode_responsive",
    "transcode_video",
]
