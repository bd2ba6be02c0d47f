"""Batch processing: scheduling, output path rules and summaries."""

from transcoder.jobs.models import BatchResult, FileOutcome, FileTask, TaskStatus
from transcoder.jobs.outputs import (
    DEFAULT_OUTPUT_EXTENSIONS,
    infer_audio_extension,
    output_extension,
    output_path_for,
)
from transcoder.jobs.scheduler import DEFAULT_PIPELINES, BatchScheduler
from transcoder.jobs.summary import format_failures, generate_summary_text, summary_counts

__all__ = [
    "DEFAULT_OUTPUT_EXTENSIONS",
    "DEFAULT_PIPELINES",
    "BatchResult",
    "BatchScheduler",
    "FileOutcome",
    "FileTask",
    "TaskStatus",
    "format_failures",
    "generate_summary_text",
    "infer_audio_extension",
    "output_extension",
    "output_path_for",
    "summary_counts",
]
