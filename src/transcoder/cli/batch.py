"""Batch transcode command."""

from __future__ import annotations

import json
import logging
import threading
from functools import partial
from pathlib import Path
from typing import Any

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.options import parse_set_options
from transcoder.cli.output import ProgressTracker, error_exit, exit_code_for
from transcoder.exceptions import TranscoderError
from transcoder.executor.events import FileCompleteEvent, FileErrorEvent, FileStartEvent
from transcoder.executor.pipeline import transcode_audio, transcode_image, transcode_video
from transcoder.jobs.models import BatchResult
from transcoder.jobs.scheduler import BatchScheduler
from transcoder.jobs.summary import format_failures, generate_summary_text, summary_counts
from transcoder.scanner.discovery import scan_directory

logger = logging.getLogger(__name__)

# How often the main thread wakes up to notice Ctrl+C
_JOIN_INTERVAL = 0.5


def _type_options(
    video_preset: str | None,
    audio_preset: str | None,
    image_preset: str | None,
    set_pairs: tuple[str, ...],
    overwrite: bool,
) -> dict[str, dict[str, Any]]:
    """Option maps per media type.

    ``--set video.width=1280`` targets one media type.
    """
    parsed = parse_set_options(set_pairs)
    unknown = set(parsed) - {"video", "audio", "image"}
    if unknown:
        raise click.BadParameter(
            "batch options must start with video., audio. or image.", param_hint="--set"
        )
    options: dict[str, dict[str, Any]] = {}
    for media_type, preset in (
        ("video", video_preset),
        ("audio", audio_preset),
        ("image", image_preset),
    ):
        data = dict(parsed.get(media_type) or {})
        if preset:
            data["preset"] = preset
        if overwrite:
            data["overwrite"] = True
        if data:
            options[media_type] = data
    return options


def _run_interruptibly(scheduler: BatchScheduler, run: Any) -> BatchResult:
    """Run the batch on a helper thread so Ctrl+C can cancel it."""
    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["result"] = run()
        except BaseException as e:  # re-raised on the calling thread
            outcome["error"] = e

    thread = threading.Thread(target=target, name="batch", daemon=True)
    thread.start()
    try:
        while thread.is_alive():
            thread.join(_JOIN_INTERVAL)
    except KeyboardInterrupt:
        click.echo("\nCancelling batch...", err=True)
        scheduler.cancel()
        thread.join()
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


@click.command("batch")
@click.argument("inputs", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    required=True,
    help="Directory for the output files.",
)
@click.option("--concurrency", "-j", type=int, default=None, help="Files processed at once.")
@click.option("--recursive", "-R", is_flag=True, help="Scan directories recursively.")
@click.option(
    "--media-type",
    "media_types",
    multiple=True,
    type=click.Choice(["video", "audio", "image"]),
    help="Only process these media types when scanning directories.",
)
@click.option("--video-preset", default=None, help="Preset for video files.")
@click.option("--audio-preset", default=None, help="Preset for audio files.")
@click.option("--image-preset", default=None, help="Preset for image files.")
@click.option(
    "--set",
    "set_pairs",
    multiple=True,
    metavar="TYPE.KEY=VALUE",
    help="Set an option for one media type, e.g. --set video.width=1280.",
)
@click.option("--prefix", default="", help="Prefix for output file names.")
@click.option("--suffix", default="", help="Suffix for output file names.")
@click.option("--extension", default=None, help="Extension forced on every output.")
@click.option("--overwrite", "-y", is_flag=True, help="Replace existing output files.")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.pass_context
def batch_command(
    ctx: click.Context,
    inputs: tuple[Path, ...],
    output_dir: Path,
    concurrency: int | None,
    recursive: bool,
    media_types: tuple[str, ...],
    video_preset: str | None,
    audio_preset: str | None,
    image_preset: str | None,
    set_pairs: tuple[str, ...],
    prefix: str,
    suffix: str,
    extension: str | None,
    overwrite: bool,
    json_output: bool,
) -> None:
    """Transcode many files (or whole directories) concurrently."""
    config = ctx.obj["config"]
    registry = ctx.obj["registry"]
    options = _type_options(video_preset, audio_preset, image_preset, set_pairs, overwrite)

    progress = ProgressTracker(total=0, enabled=not json_output)

    def on_event(event: Any) -> None:
        if isinstance(event, FileStartEvent):
            progress.start_file()
        elif isinstance(event, FileCompleteEvent | FileErrorEvent):
            progress.complete_file()

    pipeline_kwargs = {"registry": registry, "config": config}
    try:
        scheduler = BatchScheduler(
            output_dir,
            {
                "video": partial(transcode_video, **pipeline_kwargs),
                "audio": partial(transcode_audio, **pipeline_kwargs),
                "image": partial(transcode_image, **pipeline_kwargs),
            },
            concurrency=concurrency or config.processing.concurrency,
            options=options,
            output_prefix=prefix,
            output_suffix=suffix,
            output_extension=extension,
            registry=registry,
            on_event=on_event,
        )
        files: list[Path] = []
        for item in inputs:
            if item.is_dir():
                files.extend(
                    scan_directory(item, media_types=media_types or None, recursive=recursive)
                )
            else:
                files.append(item)
        progress.total = len(files)
        result = _run_interruptibly(scheduler, lambda: scheduler.run(files))
    except TranscoderError as e:
        progress.finish()
        error_exit(str(e), exit_code_for(e), json_output)
    progress.finish()

    if json_output:
        payload = {
            "summary": summary_counts(result),
            "cancelled": result.cancelled,
            "successful": [
                {
                    "input": str(o.input_path),
                    "output": str(o.output_path),
                    "thumbnails": [str(p) for p in o.thumbnails or []],
                    "warnings": o.warnings,
                }
                for o in result.successful
            ],
            "failed": [{"input": str(o.input_path), "error": o.error} for o in result.failed],
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(generate_summary_text(result))
        for line in format_failures(result):
            click.echo(f"  FAILED {line}")
        for outcome in result.degraded:
            click.echo(f"  DEGRADED {outcome.input_path.name}: {'; '.join(outcome.warnings)}")

    if result.cancelled:
        ctx.exit(int(ExitCode.INTERRUPTED))
    if result.failed:
        code = ExitCode.OPERATION_FAILED if not result.successful else ExitCode.PARTIAL_FAILURE
        ctx.exit(int(code))
