"""
Media containers shared by the validator, metadata extractor and thumbnail generator
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MediaMetadata:
    """Decoded container metadata"""
    duration_seconds: int
    width: int
    height: int
    fps: float = 0.0
    frame_count: int = 0

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict:
        return {
            "duration_seconds": self.duration_seconds,
            "width": self.width,
            "height": self.height,
            "resolution": self.resolution,
            "fps": self.fps,
            "frame_count": self.frame_count,
        }


@dataclass
class MediaCandidate:
    """
    A locally received file before upload.

    `path` points at a temporary copy owned by the candidate; call release()
    once nothing reads it any more.
    """
    filename: str
    extension: str
    size_bytes: int
    path: Optional[str] = None
    content_type: str = "video/mp4"
    metadata: Optional[MediaMetadata] = None
    _released: bool = field(default=False, repr=False)

    @property
    def stem(self) -> str:
        return os.path.splitext(self.filename)[0]

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete the temporary file backing this candidate (idempotent)"""
        if self._released:
            return
        self._released = True
        if self.path and os.path.exists(self.path):
            try:
                os.remove(self.path)
                logger.debug(f"Released temporary media file {self.path}")
            except OSError as e:
                logger.warning(f"Could not remove temporary media file {self.path}: {e}")


@dataclass
class Thumbnail:
    """Preview image: either encoded JPEG bytes or a stock image URL"""
    image_bytes: Optional[bytes]
    offset_seconds: float = 0.0
    fallback_url: Optional[str] = None
    content_type: str = "image/jpeg"

    @property
    def is_fallback(self) -> bool:
        return self.image_bytes is None
