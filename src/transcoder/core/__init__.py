"""Core utilities package.

Pure helpers with no dependencies on the rest of the transcoder:
subprocess invocation, timestamp handling and number formatting.
"""

from transcoder.core.formatting import format_file_size, format_number
from transcoder.core.subprocess_utils import run_command
from transcoder.core.time_utils import format_clock, format_seconds, parse_timestamp

__all__ = [
    "format_clock",
    "format_file_size",
    "format_number",
    "format_seconds",
    "parse_timestamp",
    "run_command",
]
