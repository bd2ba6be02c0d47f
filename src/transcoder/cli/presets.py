"""Preset listing commands."""

from __future__ import annotations

import json

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.output import error_exit
from transcoder.config.presets import MEDIA_TYPES


@click.group("presets")
def presets_group() -> None:
    """List and inspect presets."""


@presets_group.command("list")
@click.option(
    "--type",
    "media_type",
    type=click.Choice(list(MEDIA_TYPES)),
    default=None,
    help="Only list presets for this media type.",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_presets(ctx: click.Context, media_type: str | None, json_output: bool) -> None:
    """List preset names by media type."""
    registry = ctx.obj["registry"]
    types = [media_type] if media_type else list(MEDIA_TYPES)
    listing = {t: registry.names(t) for t in types}

    if json_output:
        click.echo(json.dumps(listing, indent=2))
        return
    for t, names in listing.items():
        click.echo(f"{t}:")
        for name in names:
            click.echo(f"  {name}")


@presets_group.command("show")
@click.argument("name")
@click.option(
    "--type",
    "media_type",
    type=click.Choice(list(MEDIA_TYPES)),
    default="video",
    show_default=True,
)
@click.pass_context
def show_preset(ctx: click.Context, name: str, media_type: str) -> None:
    """Show the settings of one preset."""
    values = ctx.obj["registry"].get(media_type, name)
    if values is None:
        error_exit(f"No {media_type} preset named '{name}'", ExitCode.PRESET_NOT_FOUND)
    click.echo(json.dumps(dict(values), indent=2, default=str))


@presets_group.command("profiles")
@click.pass_context
def list_profile_sets(ctx: click.Context) -> None:
    """List responsive profile sets."""
    for name, profiles in sorted(ctx.obj["registry"].responsive.items()):
        click.echo(f"{name}: {', '.join(profiles)}")
