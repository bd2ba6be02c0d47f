"""Watermark filter synthesis.

Image watermarks become a second ffmpeg input merged with ``overlay`` in
a complex filter graph. Text watermarks become a ``drawtext`` filter in
the simple chain; when no usable font can be found a filled ``drawbox``
marks the watermark area instead.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess  # nosec B404 - used only for TimeoutExpired
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from transcoder.core.formatting import format_number
from transcoder.core.subprocess_utils import run_command

if TYPE_CHECKING:
    from transcoder.executor.interface import TempAssetScope
    from transcoder.options.models import WatermarkSpec

logger = logging.getLogger(__name__)

# Image paths containing this marker are skipped when missing instead of
# failing the transcode. Test fixtures use it.
SOFT_SKIP_MARKER = "intentionally-non-existent"

FONT_SEARCH_PATHS: tuple[str, ...] = (
    "/usr/share/fonts/Adwaita/AdwaitaSans-Bold.ttf",
    "/usr/share/fonts/Adwaita/AdwaitaSans-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "/Windows/Fonts/arial.ttf",
)
FONT_SEARCH_DIRS: tuple[str, ...] = ("/usr/share/fonts", "/usr/local/share/fonts")

FALLBACK_BOX_WIDTH = 300
FALLBACK_BOX_HEIGHT = 100
FALLBACK_BOX_COLOR = "magenta"
TEXT_BOX_BORDER = 10


@dataclass(frozen=True)
class WatermarkPlan:
    """How a watermark will be rendered.

    Attributes:
        kind: "image", "text", "box" (text fallback without a font) or
            "skipped" (missing image).
        filter: Filter expression; for images the overlay expression.
        image_input: Watermark image added as the second input.
        image_filter: Filter applied to the image pad before overlay.
        warnings: Degradations recorded while planning.
    """

    kind: str
    filter: str | None
    image_input: str | None = None
    image_filter: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def needs_complex_graph(self) -> bool:
        return self.image_input is not None


def overlay_position(position: str, margin: int) -> str:
    """Overlay x:y expression for an anchor and margin."""
    m = margin
    positions = {
        "top-left": f"{m}:{m}",
        "top-right": f"main_w-overlay_w-{m}:{m}",
        "bottom-left": f"{m}:main_h-overlay_h-{m}",
        "bottom-right": f"main_w-overlay_w-{m}:main_h-overlay_h-{m}",
        "center": "(main_w-overlay_w)/2:(main_h-overlay_h)/2",
    }
    return positions.get(position, positions["bottom-right"])


def text_position(position: str, margin: int) -> tuple[str, str]:
    """drawtext x and y expressions for an anchor and margin."""
    m = margin
    positions = {
        "top-left": (f"{m}", f"{m}"),
        "top-right": (f"w-text_w-{m}", f"{m}"),
        "bottom-left": (f"{m}", f"h-text_h-{m}"),
        "bottom-right": (f"w-text_w-{m}", f"h-text_h-{m}"),
        "center": ("(w-text_w)/2", "(h-text_h)/2"),
    }
    return positions.get(position, positions["bottom-right"])


def box_position(position: str, margin: int) -> tuple[str, str]:
    """drawbox x and y expressions for the fallback rectangle."""
    m = margin
    bw, bh = FALLBACK_BOX_WIDTH, FALLBACK_BOX_HEIGHT
    positions = {
        "top-left": (f"{m}", f"{m}"),
        "top-right": (f"iw-{bw}-{m}", f"{m}"),
        "bottom-left": (f"{m}", f"ih-{bh}-{m}"),
        "bottom-right": (f"iw-{bw}-{m}", f"ih-{bh}-{m}"),
        "center": (f"(iw-{bw})/2", f"(ih-{bh})/2"),
    }
    return positions.get(position, positions["bottom-right"])


def escape_filter_value(value: str) -> str:
    """Escape a value for use as a filter option inside a filter graph.

    Applies the option-level escaping (backslash, quote, colon) and then
    the graph-level escaping (backslash, quote, brackets, comma,
    semicolon).
    """
    value = re.sub(r"([\\':])", r"\\\1", value)
    return re.sub(r"([\\'\[\],;])", r"\\\1", value)


def _fc_match_font() -> str | None:
    if shutil.which("fc-match") is None:
        return None
    try:
        stdout, _, returncode = run_command(
            ["fc-match", "--format=%{file}", "sans:bold"], timeout=10
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("fc-match failed: %s", e)
        return None
    candidate = stdout.strip()
    if returncode == 0 and candidate and Path(candidate).is_file():
        return candidate
    return None


def _search_font_dirs() -> str | None:
    for directory in FONT_SEARCH_DIRS:
        root = Path(directory)
        if not root.is_dir():
            continue
        try:
            match = next(iter(sorted(root.rglob("*.ttf"))), None)
        except OSError as e:
            logger.debug("Cannot search %s for fonts: %s", root, e)
            continue
        if match is not None:
            return str(match)
    return None


def find_font(font_file: str | None = None) -> str | None:
    """Locate a font for text watermarks.

    Lookup order: the explicit font file, the well-known paths in
    FONT_SEARCH_PATHS, fontconfig's fc-match, then the first TrueType
    file under the system font directories.

    Returns:
        Path to a font file, or None if nothing usable exists.
    """
    if font_file:
        if Path(font_file).is_file():
            return font_file
        logger.warning("Watermark font file does not exist: %s", font_file)

    for candidate in FONT_SEARCH_PATHS:
        if Path(candidate).is_file():
            logger.debug("Using font: %s", candidate)
            return candidate

    return _fc_match_font() or _search_font_dirs()


def plan_watermark(
    spec: WatermarkSpec,
    *,
    assets: TempAssetScope | None = None,
) -> WatermarkPlan:
    """Decide how to render a watermark.

    Args:
        spec: Watermark options.
        assets: Scope for temporary files. When given, text is written to
            a file there and passed with ``textfile=``; otherwise it is
            escaped inline.

    Returns:
        WatermarkPlan. A missing image yields a "skipped" plan with a
        warning; paths containing SOFT_SKIP_MARKER are expected to be
        missing and are only logged at info level.
    """
    if spec.image:
        if not Path(spec.image).is_file():
            warning = f"Watermark image does not exist, skipping watermark: {spec.image}"
            if SOFT_SKIP_MARKER in spec.image:
                logger.info(warning)
            else:
                logger.warning(warning)
            return WatermarkPlan(kind="skipped", filter=None, warnings=(warning,))
        image_filter = None
        if spec.opacity < 1:
            image_filter = (
                f"format=rgba,colorchannelmixer=aa={format_number(spec.opacity)}"
            )
        return WatermarkPlan(
            kind="image",
            filter=f"overlay={overlay_position(spec.position, spec.margin)}",
            image_input=spec.image,
            image_filter=image_filter,
        )

    text = spec.text or ""
    font = find_font(spec.font_file)
    if font is None:
        warning = "No usable font found for text watermark, drawing a box instead"
        logger.warning(warning)
        x, y = box_position(spec.position, spec.margin)
        color = f"{FALLBACK_BOX_COLOR}@{format_number(spec.opacity)}"
        return WatermarkPlan(
            kind="box",
            filter=(
                f"drawbox=x={x}:y={y}:w={FALLBACK_BOX_WIDTH}:h={FALLBACK_BOX_HEIGHT}"
                f":color={color}:t=fill"
            ),
            warnings=(warning,),
        )

    x, y = text_position(spec.position, spec.margin)
    if assets is not None:
        text_path = assets.write_text("watermark-text.txt", text)
        text_option = f"textfile={escape_filter_value(str(text_path))}"
    else:
        text_option = f"text={escape_filter_value(text)}"
    parts = [
        f"drawtext=fontfile={escape_filter_value(font)}",
        text_option,
        "expansion=none",
        f"x={x}",
        f"y={y}",
        f"fontsize={spec.font_size}",
        f"fontcolor={spec.font_color}@{format_number(spec.opacity)}",
    ]
    if spec.box_color:
        parts.extend(["box=1", f"boxcolor={spec.box_color}", f"boxborderw={TEXT_BOX_BORDER}"])
    return WatermarkPlan(kind="text", filter=":".join(parts))
