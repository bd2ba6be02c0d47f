"""TRANSCODER_* environment overrides.

EnvReader wraps a mapping (``os.environ`` unless one is given, which is
how the tests inject values) and converts raw strings to the types the
config sections expect. Unparseable values are logged and ignored so a
typo in the shell never aborts a batch.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRUTHY = frozenset({"1", "true", "yes", "on"})


class EnvReader:
    """Typed access to environment variables.

    >>> EnvReader({"TRANSCODER_CONCURRENCY": "4"}).get_int("TRANSCODER_CONCURRENCY", 2)
    4
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _parse(
        self, var: str, convert: Callable[[str], T], default: T | None, kind: str
    ) -> T | None:
        raw = self._env.get(var)
        if raw is None:
            return default
        try:
            return convert(raw.strip())
        except ValueError:
            logger.warning("Ignoring %s=%r: not a valid %s", var, raw, kind)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._env.get(var, default)

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._parse(var, int, default, "integer")

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._parse(var, float, default, "number")

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Anything outside 1/true/yes/on (any case) reads as False."""
        return self._parse(var, lambda raw: raw.lower() in TRUTHY, default, "boolean")

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Return the variable as an expanded Path.

        Tool and preset paths must exist (``must_exist``); log files may
        not exist yet and are read with ``must_exist=False``.
        """
        path = self._parse(var, lambda raw: Path(raw).expanduser(), default, "path")
        if path is None or path is default:
            return path
        if must_exist and not path.exists():
            logger.warning("Ignoring %s: %s does not exist", var, path)
            return default
        return path
