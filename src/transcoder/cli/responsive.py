"""Responsive (multi-profile) transcode command."""

from __future__ import annotations

import json
from pathlib import Path

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.options import parse_set_options
from transcoder.cli.output import error_exit, exit_code_for
from transcoder.exceptions import TranscoderError
from transcoder.executor.pipeline import transcode_responsive


@click.command("responsive")
@click.argument("input_path", type=click.Path(path_type=Path))
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for the outputs (default: beside the input).",
)
@click.option(
    "--profile",
    "profiles",
    multiple=True,
    help="Video preset to render; repeat for several (default: mobile, web, hd).",
)
@click.option("--profile-set", default=None, help="Named profile set, e.g. standard or social.")
@click.option(
    "--pattern",
    "filename_pattern",
    default=None,
    help="Output file name with %s for the profile name.",
)
@click.option("--set", "set_pairs", multiple=True, metavar="KEY=VALUE", help="Extra option.")
@click.option("--overwrite", "-y", is_flag=True, help="Replace existing outputs.")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.pass_context
def responsive_command(
    ctx: click.Context,
    input_path: Path,
    output_dir: Path | None,
    profiles: tuple[str, ...],
    profile_set: str | None,
    filename_pattern: str | None,
    set_pairs: tuple[str, ...],
    overwrite: bool,
    json_output: bool,
) -> None:
    """Render INPUT_PATH once per device profile."""
    overrides = parse_set_options(set_pairs)
    if overwrite:
        overrides["overwrite"] = True
    try:
        result = transcode_responsive(
            input_path,
            output_dir,
            profiles=profiles or None,
            profile_set=profile_set,
            filename_pattern=filename_pattern,
            overrides=overrides,
            registry=ctx.obj["registry"],
            config=ctx.obj["config"],
        )
    except TranscoderError as e:
        error_exit(str(e), exit_code_for(e), json_output)

    if json_output:
        payload = {
            "outputs": {name: str(r.output_path) for name, r in result.outputs.items()},
            "failures": result.failures,
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        for name, output in result.outputs.items():
            click.echo(f"{name}: {output.output_path}")
        for name, error in result.failures.items():
            click.echo(f"{name}: FAILED ({error})", err=True)

    if result.failures:
        ctx.exit(int(ExitCode.PARTIAL_FAILURE if result.outputs else ExitCode.OPERATION_FAILED))
