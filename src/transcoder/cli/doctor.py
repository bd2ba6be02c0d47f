"""Doctor command for checking external tool availability."""

from __future__ import annotations

import json

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.tools.paths import check_tools

# Tools every media type needs; the rest only matter for images.
REQUIRED_TOOLS = ("ffmpeg", "ffprobe")


def _format_status(available: bool) -> str:
    return "ok" if available else "missing"


@click.command("doctor")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON.")
@click.pass_context
def doctor_command(ctx: click.Context, json_output: bool) -> None:
    """Check that ffmpeg, ffprobe and ImageMagick can be found.

    Exit codes:
      0 - ffmpeg and ffprobe found
      30 - ffmpeg or ffprobe missing
    """
    found = check_tools(ctx.obj["config"].tools)

    if json_output:
        click.echo(
            json.dumps({name: str(path) if path else None for name, path in found.items()})
        )
    else:
        for name, path in found.items():
            click.echo(f"{name:<10} {_format_status(path is not None):<8} {path or ''}".rstrip())

    missing = [name for name in REQUIRED_TOOLS if found[name] is None]
    if missing:
        ctx.exit(int(ExitCode.TOOL_NOT_AVAILABLE))
