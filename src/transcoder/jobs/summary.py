"""Batch summary text generation."""

from __future__ import annotations

from transcoder.jobs.models import BatchResult


def summary_counts(result: BatchResult) -> dict[str, int]:
    """Count outcomes: ok (clean success), degraded, failed."""
    degraded = len(result.degraded)
    return {
        "ok": len(result.successful) - degraded,
        "degraded": degraded,
        "failed": len(result.failed),
    }


def generate_summary_text(result: BatchResult) -> str:
    """Human-readable one-line summary of a batch.

    Example: "Processed 5 files: 3 ok, 1 degraded, 1 failed"
    """
    counts = summary_counts(result)
    text = (
        f"Processed {result.completed} of {result.total} files: "
        f"{counts['ok']} ok, {counts['degraded']} degraded, {counts['failed']} failed"
    )
    if result.cancelled:
        text += " (cancelled)"
    return text


def format_failures(result: BatchResult) -> list[str]:
    """One line per failed file: "<name>: <error>"."""
    return [f"{outcome.input_path.name}: {outcome.error}" for outcome in result.failed]
