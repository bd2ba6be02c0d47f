"""Post-processing: metadata extraction and thumbnail capture."""

from transcoder.postprocess.chain import PostProcessingChain, PostProcessResult
from transcoder.postprocess.thumbnails import (
    ThumbnailGenerator,
    ThumbnailResult,
    thumbnail_filename,
    thumbnail_instants,
)

__all__ = [
    "PostProcessResult",
    "PostProcessingChain",
    "ThumbnailGenerator",
    "ThumbnailResult",
    "thumbnail_filename",
    "thumbnail_instants",
]
