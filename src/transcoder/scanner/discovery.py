"""Media file discovery and classification by extension."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from transcoder.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: Mapping[str, tuple[str, ...]] = {
    "video": (".mp4", ".mov", ".avi", ".mkv", ".webm", ".flv", ".wmv", ".m4v", ".3gp"),
    "audio": (".mp3", ".wav", ".aac", ".ogg", ".flac", ".m4a", ".wma"),
    "image": (".jpg", ".jpeg", ".png", ".gif", ".webp", ".tiff", ".bmp", ".svg"),
}


def normalize_extension(ext: str) -> str:
    """Return a lowercase extension with a leading dot."""
    ext = ext.strip().casefold()
    return ext if ext.startswith(".") else f".{ext}"


def classify_media_type(path: Path | str) -> str | None:
    """Media type implied by a file extension.

    Returns:
        "video", "audio" or "image", or None for unsupported extensions.
    """
    suffix = Path(path).suffix.casefold()
    for media_type, extensions in SUPPORTED_EXTENSIONS.items():
        if suffix in extensions:
            return media_type
    return None


def _wanted_extensions(
    media_types: Iterable[str] | None,
    extensions: Iterable[str] | None,
) -> set[str]:
    if extensions:
        return {normalize_extension(ext) for ext in extensions}
    types = list(media_types) if media_types else list(SUPPORTED_EXTENSIONS)
    wanted: set[str] = set()
    for media_type in types:
        if media_type not in SUPPORTED_EXTENSIONS:
            raise ValidationError(f"Unknown media type: {media_type}", field="media_types")
        wanted.update(SUPPORTED_EXTENSIONS[media_type])
    return wanted


def scan_directory(
    directory: Path | str,
    *,
    media_types: Iterable[str] | None = None,
    extensions: Iterable[str] | None = None,
    recursive: bool = False,
) -> list[Path]:
    """Find media files in a directory.

    Args:
        directory: Directory to scan.
        media_types: Media types to include (default: all).
        extensions: Explicit extensions to include; overrides media_types.
        recursive: Descend into subdirectories.

    Returns:
        Sorted list of matching file paths.

    Raises:
        NotFoundError: If the directory does not exist.
        ValidationError: If the path is not a directory or a media type is
            unknown.
    """
    root = Path(directory).expanduser()
    if not root.exists():
        raise NotFoundError(root, what="Directory")
    if not root.is_dir():
        raise ValidationError(f"Not a directory: {root}", field="directory")

    wanted = _wanted_extensions(media_types, extensions)
    candidates = root.rglob("*") if recursive else root.iterdir()
    files = sorted(
        path for path in candidates if path.is_file() and path.suffix.casefold() in wanted
    )
    logger.debug("Found %d media files in %s", len(files), root)
    return files
