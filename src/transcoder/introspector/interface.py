"""Common shape of the probe backends."""

from pathlib import Path
from typing import Any, Protocol

from transcoder.exceptions import MediaIntrospectionError

__all__ = ["MediaIntrospectionError", "MediaIntrospector"]


class MediaIntrospector(Protocol):
    """Something that can describe a finished output file.

    FFprobeIntrospector returns ``format``/``video``/``audio`` sections
    for audio and video; ImageIntrospector returns width, height, format
    and size. Post-processing only stores the dict, so either fits.
    Failures raise MediaIntrospectionError.
    """

    def get_metadata(self, path: Path) -> dict[str, Any]: ...
