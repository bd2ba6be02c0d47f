"""Buffered runs of short tool calls.

ffprobe, identify and single-frame ffmpeg captures finish in seconds and
print little, so their output is simply collected. Encodes stream
progress and are run by transcoder.executor.supervisor instead.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Arguments shown when a command is summarized in a log line
_SUMMARY_ARGS = 4


def _summarize(argv: list[str]) -> str:
    head = " ".join(argv[:_SUMMARY_ARGS])
    return head if len(argv) <= _SUMMARY_ARGS else f"{head} ..."


def run_command(
    args: list[str | Path],
    timeout: int | float = 120,
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run ``args`` to completion and return ``(stdout, stderr, returncode)``.

    Output is decoded as text with undecodable bytes replaced, since
    tools echo file names in whatever encoding the filesystem uses.
    A missing executable raises FileNotFoundError. On timeout the child
    is killed and subprocess.TimeoutExpired propagates to the caller,
    which decides whether that is a failure or a skipped step.
    """
    argv = [str(arg) for arg in args]
    tool = Path(argv[0]).name
    logger.debug("Running %s", " ".join(argv), extra={"tool": tool})

    started = time.monotonic()
    try:
        completed = subprocess.run(  # nosec B603
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.warning("%s gave no result within %ss: %s", tool, timeout, _summarize(argv))
        raise

    logger.debug(
        "%s exited with %d after %.2fs",
        tool,
        completed.returncode,
        time.monotonic() - started,
        extra={"tool": tool, "returncode": completed.returncode},
    )
    return completed.stdout or "", completed.stderr or "", completed.returncode
