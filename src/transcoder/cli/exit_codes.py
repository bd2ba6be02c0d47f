"""Process exit codes shared by every transcoder command.

Codes are grouped by decade so scripts can branch on the kind of
failure: 1x for rejected options, config or presets, 2x for input and
output paths, 3x for missing tools, and 4x for encodes that ran and
failed. A batch where only some files failed exits with
PARTIAL_FAILURE.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    # Ctrl-C or a cancelled encode; click usage errors also exit 2
    INTERRUPTED = 2

    VALIDATION_ERROR = 10
    CONFIG_ERROR = 11
    PRESET_NOT_FOUND = 12

    TARGET_NOT_FOUND = 20
    OUTPUT_EXISTS = 21

    TOOL_NOT_AVAILABLE = 30

    OPERATION_FAILED = 40
    PARTIAL_FAILURE = 41
