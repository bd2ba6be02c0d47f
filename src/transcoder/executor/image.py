"""ImageMagick command synthesis for image conversion."""

from __future__ import annotations

import logging
from pathlib import Path

from transcoder.core.formatting import format_number
from transcoder.executor.interface import TranscodeCommand
from transcoder.options.models import ImageSettings, ResizeSpec

logger = logging.getLogger(__name__)

_QUALITY_FORMATS = frozenset({"jpg", "jpeg", "webp", "avif"})


def resize_args(resize: ResizeSpec) -> list[str]:
    """Resize arguments for a fit mode.

    fill stretches to the exact size, inside fits within the box,
    outside covers the box, cover covers and crops to the exact size.
    """
    width, height = resize.width, resize.height
    if width and height:
        if resize.fit == "inside":
            return ["-resize", f"{width}x{height}"]
        if resize.fit == "outside":
            return ["-resize", f"{width}x{height}^"]
        if resize.fit == "cover":
            return [
                "-resize",
                f"{width}x{height}^",
                "-gravity",
                "center",
                "-extent",
                f"{width}x{height}",
            ]
        return ["-resize", f"{width}x{height}!"]
    if width:
        return ["-resize", f"{width}x"]
    if height:
        return ["-resize", f"x{height}"]
    return []


def square_pad_args(
    settings: ImageSettings,
    source_size: tuple[int, int],
) -> list[str]:
    """Resize and pad the image onto a square canvas.

    The square side is the larger requested dimension, or the larger
    source dimension when none was requested, plus pad_size on each side.
    """
    source_width, source_height = source_size
    if settings.width and settings.height:
        side = max(settings.width, settings.height)
    elif settings.width or settings.height:
        side = settings.width or settings.height or 0
    else:
        side = max(source_width, source_height)
    if settings.pad_size > 0:
        side += settings.pad_size * 2

    if source_width < source_height:
        resize = f"x{side}"
    else:
        resize = f"{side}x"
    return [
        "-resize",
        resize,
        "-background",
        settings.pad_color,
        "-gravity",
        "center",
        "-extent",
        f"{side}x{side}",
    ]


def build_image_command(
    settings: ImageSettings,
    input_path: Path,
    output_path: Path,
    *,
    source_size: tuple[int, int] | None = None,
    convert: str = "convert",
) -> TranscodeCommand:
    """Build the ImageMagick convert command for an image.

    Transformations are applied in order: resize, rotate, flip, crop,
    square padding, quality, metadata stripping.

    Args:
        settings: Resolved image settings.
        input_path: Source image.
        output_path: Destination file; its extension selects the format.
        source_size: (width, height) of the source, required for square
            padding. Without it padding is skipped with a warning.
        convert: ImageMagick convert executable.

    Returns:
        TranscodeCommand with the argument vector.
    """
    warnings: list[str] = []
    args: list[str] = [convert, str(input_path)]

    if settings.resize and not settings.square_pad:
        args.extend(resize_args(settings.resize))

    if settings.rotate:
        args.extend(["-rotate", format_number(settings.rotate)])

    if settings.flip == "horizontal":
        args.append("-flop")
    elif settings.flip == "vertical":
        args.append("-flip")
    elif settings.flip == "both":
        args.extend(["-flip", "-flop"])

    # A fitted resize already decides the framing
    fitted = settings.resize is not None and settings.resize.fit != "fill"
    if settings.crop and not fitted:
        crop = settings.crop
        args.extend(["-crop", f"{crop.width}x{crop.height}+{crop.x}+{crop.y}"])

    if settings.square_pad:
        if source_size and all(source_size):
            args.extend(square_pad_args(settings, source_size))
        else:
            warning = "Image dimensions unknown, square padding skipped"
            logger.warning(warning)
            warnings.append(warning)

    image_format = settings.format.casefold()
    if image_format in _QUALITY_FORMATS:
        args.extend(["-quality", str(settings.quality)])
    elif image_format == "png" and settings.compression_level:
        args.extend(["-quality", str(100 - settings.compression_level * 10)])

    if settings.optimize or settings.strip_metadata:
        args.append("-strip")

    args.append(str(output_path))
    return TranscodeCommand(args=tuple(args), warnings=tuple(warnings))
