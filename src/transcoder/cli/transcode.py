"""Single-file transcode command."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.options import load_options_file, merge_options, parse_set_options
from transcoder.cli.output import ProgressTracker, error_exit, exit_code_for, warning_output
from transcoder.exceptions import TranscoderError
from transcoder.executor.events import ProgressEvent
from transcoder.executor.pipeline import transcode_audio, transcode_image, transcode_video
from transcoder.scanner.discovery import classify_media_type

logger = logging.getLogger(__name__)

PIPELINES = {
    "video": transcode_video,
    "audio": transcode_audio,
    "image": transcode_image,
}


def collect_options(
    preset: str | None,
    options_file: Path | None,
    set_pairs: tuple[str, ...],
    overwrite: bool,
) -> dict[str, Any]:
    """Merge --options file, --set pairs, --preset and --overwrite."""
    data = merge_options(
        load_options_file(options_file) if options_file else None,
        parse_set_options(set_pairs),
    )
    if preset:
        data["preset"] = preset
    if overwrite:
        data["overwrite"] = True
    return data


def result_payload(result: Any) -> dict[str, Any]:
    return {
        "status": "completed",
        "output_path": str(result.output_path),
        "command": result.command,
        "metadata": result.metadata,
        "source_metadata": result.source_metadata,
        "thumbnails": [str(p) for p in result.thumbnails] if result.thumbnails else None,
        "warnings": list(result.warnings),
    }


@click.command("transcode")
@click.argument("input_path", type=click.Path(path_type=Path))
@click.argument("output_path", type=click.Path(path_type=Path))
@click.option(
    "--type",
    "media_type",
    type=click.Choice(["video", "audio", "image"]),
    default=None,
    help="Media type (default: from the input extension).",
)
@click.option("--preset", "-p", default=None, help="Named preset to apply.")
@click.option(
    "--options",
    "options_file",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    default=None,
    help="YAML file with transcode options.",
)
@click.option(
    "--set",
    "set_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Set an option, e.g. --set width=1280 --set watermark.text=Demo.",
)
@click.option("--overwrite", "-y", is_flag=True, help="Replace an existing output file.")
@click.option("--timeout", type=float, default=None, help="Maximum encode time in seconds.")
@click.option("--json", "json_output", is_flag=True, help="Print the result as JSON.")
@click.pass_context
def transcode_command(
    ctx: click.Context,
    input_path: Path,
    output_path: Path,
    media_type: str | None,
    preset: str | None,
    options_file: Path | None,
    set_pairs: tuple[str, ...],
    overwrite: bool,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Transcode INPUT_PATH into OUTPUT_PATH."""
    media_type = media_type or classify_media_type(input_path)
    if media_type is None:
        error_exit(
            f"Cannot tell the media type of {input_path}; use --type",
            ExitCode.VALIDATION_ERROR,
            json_output,
        )
    options = collect_options(preset, options_file, set_pairs, overwrite)

    progress = ProgressTracker(enabled=not json_output)

    def on_event(event: Any) -> None:
        if isinstance(event, ProgressEvent) and event.percent is not None:
            progress.update_percent(event.percent)

    try:
        result = PIPELINES[media_type](
            input_path,
            output_path,
            options,
            registry=ctx.obj["registry"],
            config=ctx.obj["config"],
            on_event=on_event,
            timeout=timeout,
        )
    except TranscoderError as e:
        progress.finish()
        error_exit(str(e), exit_code_for(e), json_output)
    progress.finish()

    if json_output:
        click.echo(json.dumps(result_payload(result), indent=2))
        return
    for warning in result.warnings:
        warning_output(warning)
    click.echo(f"Created {result.output_path}")
    if result.thumbnails:
        click.echo(f"Thumbnails: {', '.join(str(p) for p in result.thumbnails)}")
