"""Locating ffmpeg, ffprobe and the ImageMagick binaries.

A configured path wins when it points at a file; otherwise PATH is
searched. When neither finds the tool, callers still get the bare name
so that the failure surfaces as a ToolLaunchError on first use rather
than at startup. ``transcoder doctor`` reports the lookup results.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from transcoder.config.models import ToolPathsConfig

logger = logging.getLogger(__name__)

TOOL_NAMES = ("ffmpeg", "ffprobe", "convert", "identify")


def _configured(name: str, tools: ToolPathsConfig | None) -> Path | None:
    return getattr(tools, name, None) if tools is not None else None


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Return the executable for ``name``, or None when it cannot be found."""
    if configured_path and configured_path.is_file():
        return configured_path
    if configured_path:
        logger.warning("Ignoring %s path %s: not a file", name, configured_path)

    on_path = shutil.which(name)
    return Path(on_path) if on_path else None


def get_tool_path(name: str, tools: ToolPathsConfig | None = None) -> str:
    """Executable to put in argv[0] for one of TOOL_NAMES."""
    if name not in TOOL_NAMES:
        raise ValueError(f"Unknown tool: {name}")
    found = find_tool(name, _configured(name, tools))
    if found is None:
        logger.debug("%s not found; leaving it to the OS to resolve", name)
        return name
    return str(found)


def check_tools(tools: ToolPathsConfig | None = None) -> dict[str, Path | None]:
    """Lookup result for every tool, in TOOL_NAMES order."""
    return {name: find_tool(name, _configured(name, tools)) for name in TOOL_NAMES}
