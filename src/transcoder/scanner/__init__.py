"""Media file discovery for batch processing."""

from transcoder.scanner.discovery import (
    SUPPORTED_EXTENSIONS,
    classify_media_type,
    normalize_extension,
    scan_directory,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "classify_media_type",
    "normalize_extension",
    "scan_directory",
]
