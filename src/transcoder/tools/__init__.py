"""External tool support: progress parsing and executable lookup."""

from transcoder.tools.ffmpeg_progress import (
    LineBuffer,
    ProgressBlockCollector,
    ProgressSample,
    parse_duration,
    parse_progress,
)
from transcoder.tools.paths import TOOL_NAMES, check_tools, find_tool, get_tool_path

__all__ = [
    "LineBuffer",
    "ProgressBlockCollector",
    "ProgressSample",
    "TOOL_NAMES",
    "check_tools",
    "find_tool",
    "get_tool_path",
    "parse_duration",
    "parse_progress",
]
