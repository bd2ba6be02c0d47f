"""``transcoder`` command line entry point.

The group callback loads configuration and presets once and hands them
to subcommands through ``ctx.obj``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from transcoder.cli.exit_codes import ExitCode
from transcoder.cli.output import error_exit
from transcoder.config import (
    AppConfig,
    ConfigError,
    PresetError,
    PresetRegistry,
    get_config,
    get_default_registry,
    load_presets_file,
)
from transcoder.logging import configure_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning", "error")


def _load_registry(config: AppConfig) -> PresetRegistry:
    """Built-in presets, with the user's presets file merged over them."""
    if config.presets_file is None:
        return get_default_registry()
    try:
        registry = load_presets_file(config.presets_file)
    except PresetError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)
    logger.debug("Loaded presets from %s", config.presets_file)
    return registry


@click.group()
@click.version_option(package_name="transcoder")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="TOML config file. Defaults to ~/.transcoder/config.toml if present.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Minimum level to log (config default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Write logs to this file instead of stderr.",
)
@click.option("--log-json", is_flag=True, help="Log one JSON object per line.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Transcode video, audio and image files with ffmpeg and ImageMagick."""
    try:
        # An explicit --config must exist and parse; the default may be absent.
        config = get_config(
            config_path=config_path,
            log_level=log_level,
            log_file=log_file,
            log_format="json" if log_json else None,
            strict=config_path is not None,
        )
    except ConfigError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)

    configure_logging(config.logging)
    ctx.obj = {"config": config, "registry": _load_registry(config)}
    logger.debug(
        "Running with concurrency %d",
        config.processing.concurrency,
        extra={"transcode_timeout": config.processing.transcode_timeout},
    )


def _register_commands() -> None:
    # Subcommand modules import from this package.
    from transcoder.cli.batch import batch_command
    from transcoder.cli.doctor import doctor_command
    from transcoder.cli.presets import presets_group
    from transcoder.cli.responsive import responsive_command
    from transcoder.cli.transcode import transcode_command

    for command in (
        transcode_command,
        batch_command,
        responsive_command,
        presets_group,
        doctor_command,
    ):
        main.add_command(command)


_register_commands()
