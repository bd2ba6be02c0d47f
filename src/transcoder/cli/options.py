"""Option maps built from command line flags and YAML files."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import click
import yaml


def parse_set_options(pairs: Iterable[str]) -> dict[str, Any]:
    """Build an option map from ``key=value`` pairs.

    Dotted keys create nested maps (``watermark.text=Hello``). Values are
    parsed as YAML scalars, so ``1080`` is an int, ``true`` a bool and
    ``[1, 5]`` a list.

    Raises:
        click.BadParameter: If a pair has no "=" or an empty key.
    """
    options: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--set")
        try:
            value = yaml.safe_load(raw) if raw.strip() else ""
        except yaml.YAMLError:
            value = raw
        target = options
        *parents, leaf = key.split(".")
        for parent in parents:
            child = target.setdefault(parent, {})
            if not isinstance(child, dict):
                raise click.BadParameter(
                    f"{parent!r} is set both as a value and as a section", param_hint="--set"
                )
            target = child
        target[leaf] = value
    return options


def load_options_file(path: Path) -> dict[str, Any]:
    """Load an option map from a YAML file.

    Raises:
        click.BadParameter: If the file is not valid YAML or not a mapping.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise click.BadParameter(f"invalid YAML in {path}: {e}", param_hint="--options") from e
    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} must contain a mapping", param_hint="--options")
    return data


def merge_options(*maps: dict[str, Any] | None) -> dict[str, Any]:
    """Merge option maps left to right; nested maps are merged key by key."""
    merged: dict[str, Any] = {}
    for data in maps:
        for key, value in (data or {}).items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = merge_options(merged[key], value)
            else:
                merged[key] = value
    return merged
