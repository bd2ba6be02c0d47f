"""Best-effort steps run after a successful transcode.

Metadata extraction and thumbnail capture are independent: a failure in
either is logged, recorded as a warning and leaves the transcode
successful.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from transcoder.exceptions import PostProcessWarning
from transcoder.introspector.interface import MediaIntrospector
from transcoder.introspector.parsers import metadata_duration
from transcoder.options.models import ThumbnailSpec
from transcoder.postprocess.thumbnails import DEFAULT_PATTERN, ThumbnailGenerator

logger = logging.getLogger(__name__)


@dataclass
class PostProcessResult:
    metadata: dict[str, Any] | None = None
    thumbnails: list[Path] | None = None
    warnings: list[str] = field(default_factory=list)


class PostProcessingChain:
    """Metadata extraction followed by optional thumbnail capture."""

    def __init__(
        self,
        introspector: MediaIntrospector | None = None,
        thumbnailer: ThumbnailGenerator | None = None,
    ) -> None:
        self._introspector = introspector
        self._thumbnailer = thumbnailer

    def extract_metadata(self, path: Path, result: PostProcessResult) -> None:
        if self._introspector is None:
            return
        try:
            result.metadata = self._introspector.get_metadata(path)
        except PostProcessWarning as e:
            logger.warning("Metadata extraction failed for %s: %s", path, e)
            result.warnings.append(f"Metadata extraction failed: {e}")

    def capture_thumbnails(
        self,
        source_path: Path,
        spec: ThumbnailSpec,
        output_dir: Path,
        duration: float | None,
        result: PostProcessResult,
        *,
        default_pattern: str = DEFAULT_PATTERN,
        overwrite: bool = False,
    ) -> None:
        if self._thumbnailer is None:
            return
        try:
            captured = self._thumbnailer.generate(
                source_path,
                spec,
                output_dir,
                duration=duration,
                default_pattern=default_pattern,
                overwrite=overwrite,
            )
        except PostProcessWarning as e:
            logger.warning("Thumbnail generation failed for %s: %s", source_path, e)
            result.warnings.append(f"Thumbnail generation failed: {e}")
            return
        except OSError as e:
            logger.warning("Cannot write thumbnails to %s: %s", output_dir, e)
            result.warnings.append(f"Thumbnail generation failed: {e}")
            return
        result.thumbnails = captured.paths
        result.warnings.extend(captured.warnings)

    def run(
        self,
        output_path: Path,
        *,
        source_path: Path | None = None,
        thumbnails: ThumbnailSpec | None = None,
        duration: float | None = None,
        overwrite: bool = False,
    ) -> PostProcessResult:
        """Run the chain for one transcoded file.

        Args:
            output_path: The transcoded file (metadata is read from it).
            source_path: File thumbnails are captured from (default:
                output_path).
            thumbnails: Thumbnail spec, or None to skip thumbnails.
            duration: Known source duration, used when metadata lacks one.
            overwrite: Replace thumbnails left by an earlier run.

        Returns:
            PostProcessResult; never raises for post-processing failures.
        """
        result = PostProcessResult()
        self.extract_metadata(output_path, result)

        if thumbnails is not None:
            source = source_path or output_path
            output_dir = output_path.parent
            if thumbnails.output_dir:
                output_dir = Path(thumbnails.output_dir)
            if source == output_path:
                duration = metadata_duration(result.metadata) or duration
            # Default names carry the output stem: clip-thumbnail-001.jpg
            self.capture_thumbnails(
                source,
                thumbnails,
                output_dir,
                duration,
                result,
                default_pattern=f"{output_path.stem}-{DEFAULT_PATTERN}",
                overwrite=overwrite,
            )

        return result
