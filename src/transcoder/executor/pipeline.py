"""Single-file transcoding pipelines.

Each pipeline resolves options, validates paths, synthesizes the tool
command, supervises the tool and runs best-effort post-processing:

    resolve -> validate paths -> probe -> build command -> supervise
    -> metadata -> thumbnails

Hard failures raise a TranscoderError subclass. Post-processing failures
are logged, recorded in PipelineResult.warnings and never fail the
transcode.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from transcoder.config.models import AppConfig
from transcoder.config.presets import PresetRegistry, get_default_registry
from transcoder.core.formatting import format_file_size
from transcoder.core.time_utils import format_clock
from transcoder.exceptions import (
    ConflictError,
    MediaIntrospectionError,
    NotFoundError,
    TranscoderError,
    ValidationError,
)
from transcoder.executor.audio import build_audio_command
from transcoder.executor.command import build_video_command, effective_duration
from transcoder.executor.events import EventCallback
from transcoder.executor.image import build_image_command
from transcoder.executor.interface import TempAssetScope, TranscodeCommand
from transcoder.executor.supervisor import CancellationToken, ProcessSupervisor
from transcoder.introspector.ffprobe import FFprobeIntrospector
from transcoder.introspector.identify import ImageIntrospector
from transcoder.introspector.parsers import metadata_duration
from transcoder.options.resolver import (
    resolve_audio_settings,
    resolve_image_settings,
    resolve_video_settings,
)
from transcoder.postprocess.chain import PostProcessingChain
from transcoder.postprocess.thumbnails import ThumbnailGenerator
from transcoder.tools.paths import get_tool_path

logger = logging.getLogger(__name__)

DEFAULT_RESPONSIVE_PROFILES: tuple[str, ...] = ("mobile", "web", "hd")


@dataclass
class PipelineResult:
    """Outcome of a successful single-file pipeline."""

    output_path: Path
    command: str
    events: list[Any] = field(default_factory=list)
    metadata: dict[str, Any] | None = None
    """Probe of the written output."""
    source_metadata: dict[str, Any] | None = None
    """Probe of the input (audio and video only)."""
    thumbnails: list[Path] | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when an optional feature was skipped or failed."""
        return bool(self.warnings)


class Pipeline(Protocol):
    """Callable signature shared by the single-file pipelines."""

    def __call__(
        self,
        input_path: Path | str,
        output_path: Path | str,
        options: Mapping[str, Any] | None = None,
        *,
        on_event: EventCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult: ...


def validate_paths(input_path: Path | str, output_path: Path | str) -> tuple[Path, Path]:
    """Check that the input exists and differs from the output.

    Raises:
        ValidationError: If a path is empty or both paths are the same file.
        NotFoundError: If the input file does not exist.
    """
    if not str(input_path).strip():
        raise ValidationError("Input path is required", field="input_path")
    if not str(output_path).strip():
        raise ValidationError("Output path is required", field="output_path")

    source = Path(input_path)
    target = Path(output_path)
    if not source.is_file():
        raise NotFoundError(source)
    if source.resolve() == target.resolve():
        raise ValidationError(
            f"Output path must differ from input path: {target}", field="output_path"
        )
    return source, target


def prepare_output(output_path: Path, overwrite: bool) -> None:
    """Refuse to clobber an existing output and create its directory.

    Raises:
        ConflictError: If the output exists and overwrite is disabled.
    """
    if output_path.exists() and not overwrite:
        raise ConflictError(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)


def _probe_source(
    ffprobe: FFprobeIntrospector, source: Path
) -> tuple[dict[str, Any] | None, float | None]:
    """Input metadata and duration; either may be None when probing fails."""
    metadata = None
    try:
        metadata = ffprobe.get_metadata(source)
    except MediaIntrospectionError as e:
        logger.debug("Full probe of %s failed: %s", source, e)

    duration = metadata_duration(metadata)
    if duration is None:
        try:
            duration = ffprobe.get_duration(source)
        except MediaIntrospectionError as e:
            logger.warning("Could not determine duration of %s: %s", source, e)
    return metadata, duration


def _supervise(
    command: TranscodeCommand,
    output_path: Path,
    *,
    duration: float | None,
    timeout: float | None,
    on_event: EventCallback | None,
    cancel_token: CancellationToken | None,
) -> list[Any]:
    logger.info("Running %s", command.command_line)
    if duration is not None:
        logger.debug("Expected output duration %s", format_clock(duration))
    supervisor = ProcessSupervisor(
        command.args,
        output_path,
        duration=duration,
        timeout=timeout,
        cancel_token=cancel_token,
        on_event=on_event,
    )
    outcome = supervisor.run()
    size = output_path.stat().st_size
    logger.info(
        "Created %s (%s) in %.1fs",
        output_path,
        format_file_size(size),
        outcome.elapsed_seconds,
        extra={"output_path": str(output_path), "size_bytes": size},
    )
    return outcome.events


def _transcode_timeout(config: AppConfig, timeout: float | None) -> float | None:
    return timeout if timeout is not None else config.processing.transcode_timeout


def transcode_video(
    input_path: Path | str,
    output_path: Path | str,
    options: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    config: AppConfig | None = None,
    on_event: EventCallback | None = None,
    cancel_token: CancellationToken | None = None,
    timeout: float | None = None,
) -> PipelineResult:
    """Transcode a video file.

    Args:
        input_path: Source video.
        output_path: Destination file.
        options: Override map (snake_case or camelCase keys), optionally
            naming a preset.
        registry: Preset registry (default: built-in presets).
        config: Tool paths and timeouts (default: AppConfig()).
        on_event: Receives StartEvent, ProgressEvent and LogEvent objects.
        cancel_token: Token that cancels the running encode.
        timeout: Maximum encode runtime in seconds.

    Returns:
        PipelineResult with the output path, emitted events, metadata,
        thumbnails and any recorded degradations.

    Raises:
        ValidationError: For invalid options or paths.
        NotFoundError: If the input does not exist.
        ConflictError: If the output exists and overwrite is disabled.
        ToolLaunchError: If ffmpeg cannot be started.
        ToolExecutionError: If ffmpeg fails (or times out, or is cancelled).
    """
    config = config or AppConfig()
    source, target = validate_paths(input_path, output_path)
    settings = resolve_video_settings(options, registry=registry)
    prepare_output(target, settings.overwrite)

    warnings: list[str] = []
    ffprobe = FFprobeIntrospector(
        get_tool_path("ffprobe", config.tools), timeout=config.processing.probe_timeout
    )
    source_metadata, duration = _probe_source(ffprobe, source)

    ffmpeg = get_tool_path("ffmpeg", config.tools)
    with TempAssetScope() as assets:
        command = build_video_command(
            settings, source, target, duration=duration, ffmpeg=ffmpeg, assets=assets
        )
        warnings.extend(command.warnings)
        events = _supervise(
            command,
            target,
            duration=effective_duration(settings.trim, duration),
            timeout=_transcode_timeout(config, timeout),
            on_event=on_event,
            cancel_token=cancel_token,
        )

    thumbnailer = None
    if settings.thumbnails is not None:
        thumbnailer = ThumbnailGenerator(ffmpeg, timeout=config.processing.probe_timeout)
    chain = PostProcessingChain(ffprobe, thumbnailer)
    post = chain.run(
        target,
        source_path=source,
        thumbnails=settings.thumbnails,
        duration=duration,
        overwrite=settings.overwrite,
    )
    warnings.extend(post.warnings)

    return PipelineResult(
        output_path=target,
        command=command.command_line,
        events=events,
        metadata=post.metadata,
        source_metadata=source_metadata,
        thumbnails=post.thumbnails,
        warnings=warnings,
    )


def transcode_audio(
    input_path: Path | str,
    output_path: Path | str,
    options: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    config: AppConfig | None = None,
    on_event: EventCallback | None = None,
    cancel_token: CancellationToken | None = None,
    timeout: float | None = None,
) -> PipelineResult:
    """Transcode or enhance an audio file (or the audio of a video).

    Raises:
        ValidationError: For invalid options or paths, or an input that
            ffprobe reports as having no audio stream.
        NotFoundError: If the input does not exist.
        ConflictError: If the output exists and overwrite is disabled.
        ToolLaunchError: If ffmpeg cannot be started.
        ToolExecutionError: If ffmpeg fails.
    """
    config = config or AppConfig()
    source, target = validate_paths(input_path, output_path)
    settings = resolve_audio_settings(options, registry=registry)
    prepare_output(target, settings.overwrite)

    ffprobe = FFprobeIntrospector(
        get_tool_path("ffprobe", config.tools), timeout=config.processing.probe_timeout
    )
    duration = None
    source_metadata = None
    try:
        source_metadata = ffprobe.get_metadata(source)
    except MediaIntrospectionError as e:
        logger.warning("Could not probe %s, continuing without duration: %s", source, e)
    else:
        if source_metadata.get("audio") is None:
            raise ValidationError(
                f"Input file does not contain any audio streams: {source}",
                field="input_path",
            )
        duration = metadata_duration(source_metadata)

    command = build_audio_command(
        settings, source, target, duration=duration, ffmpeg=get_tool_path("ffmpeg", config.tools)
    )
    warnings = list(command.warnings)
    events = _supervise(
        command,
        target,
        duration=duration,
        timeout=_transcode_timeout(config, timeout),
        on_event=on_event,
        cancel_token=cancel_token,
    )

    post = PostProcessingChain(ffprobe).run(target)
    warnings.extend(post.warnings)

    return PipelineResult(
        output_path=target,
        command=command.command_line,
        events=events,
        metadata=post.metadata,
        source_metadata=source_metadata,
        warnings=warnings,
    )


def transcode_image(
    input_path: Path | str,
    output_path: Path | str,
    options: Mapping[str, Any] | None = None,
    *,
    registry: PresetRegistry | None = None,
    config: AppConfig | None = None,
    on_event: EventCallback | None = None,
    cancel_token: CancellationToken | None = None,
    timeout: float | None = None,
) -> PipelineResult:
    """Convert an image with ImageMagick.

    Raises:
        ValidationError: For invalid options or paths.
        NotFoundError: If the input does not exist.
        ConflictError: If the output exists and overwrite is disabled.
        ToolLaunchError: If convert cannot be started.
        ToolExecutionError: If convert fails.
    """
    config = config or AppConfig()
    source, target = validate_paths(input_path, output_path)
    settings = resolve_image_settings(options, registry=registry)
    prepare_output(target, settings.overwrite)

    identify = ImageIntrospector(
        get_tool_path("identify", config.tools), timeout=config.processing.probe_timeout
    )
    source_size = None
    if settings.square_pad:
        try:
            source_size = identify.get_dimensions(source)
        except MediaIntrospectionError as e:
            logger.warning("Could not read dimensions of %s: %s", source, e)

    command = build_image_command(
        settings,
        source,
        target,
        source_size=source_size,
        convert=get_tool_path("convert", config.tools),
    )
    warnings = list(command.warnings)
    events = _supervise(
        command,
        target,
        duration=None,
        timeout=_transcode_timeout(config, timeout),
        on_event=on_event,
        cancel_token=cancel_token,
    )

    post = PostProcessingChain(identify).run(target)
    warnings.extend(post.warnings)

    return PipelineResult(
        output_path=target,
        command=command.command_line,
        events=events,
        metadata=post.metadata,
        warnings=warnings,
    )


@dataclass
class ResponsiveResult:
    """Outputs of a responsive transcode, keyed by profile name."""

    input_path: Path
    outputs: dict[str, PipelineResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


def transcode_responsive(
    input_path: Path | str,
    output_dir: Path | str | None = None,
    *,
    profiles: Sequence[str] | None = None,
    profile_set: str | None = None,
    filename_pattern: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    registry: PresetRegistry | None = None,
    config: AppConfig | None = None,
    on_event: EventCallback | None = None,
    cancel_token: CancellationToken | None = None,
    timeout: float | None = None,
) -> ResponsiveResult:
    """Transcode one video into a version per device profile.

    Profiles run one after another. A profile that fails is logged and
    recorded in ResponsiveResult.failures; the remaining profiles still
    run.

    Args:
        input_path: Source video.
        output_dir: Directory for the outputs (default: beside the input).
        profiles: Video preset names to render (default: mobile, web, hd).
        profile_set: Named profile set; overrides ``profiles`` when known.
        filename_pattern: Output name with ``%s`` for the profile name
            (default: ``%s-<input file name>``).
        overrides: Options applied on top of each profile's preset.

    Raises:
        NotFoundError: If the input does not exist.
        ValidationError: If no profiles are given or one is not a preset.
    """
    registry = registry or get_default_registry()
    source = Path(input_path)
    if not source.is_file():
        raise NotFoundError(source)

    selected = tuple(profiles) if profiles else DEFAULT_RESPONSIVE_PROFILES
    if profile_set:
        named = registry.get_profile_set(profile_set)
        if named is None:
            logger.warning("Profile set '%s' not found, using %s", profile_set, selected)
        else:
            selected = named
    if not selected:
        raise ValidationError("At least one profile must be specified", field="profiles")
    for profile in selected:
        if registry.get("video", profile) is None:
            raise ValidationError(f"Profile '{profile}' is not a valid preset", field="profiles")

    directory = Path(output_dir) if output_dir else source.parent
    directory.mkdir(parents=True, exist_ok=True)
    pattern = filename_pattern or f"%s-{source.name}"

    extra = {k: v for k, v in (overrides or {}).items() if k != "preset"}
    result = ResponsiveResult(input_path=source)
    for profile in selected:
        target = directory / pattern.replace("%s", profile, 1)
        logger.info("Transcoding %s version: %s", profile, target)
        try:
            result.outputs[profile] = transcode_video(
                source,
                target,
                {"preset": profile, **extra},
                registry=registry,
                config=config,
                on_event=on_event,
                cancel_token=cancel_token,
                timeout=timeout,
            )
        except TranscoderError as e:
            logger.error("Failed to transcode %s version: %s", profile, e)
            result.failures[profile] = str(e)
    return result
