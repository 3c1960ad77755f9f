"""
Duration / resolution extraction with OpenCV
"""

import asyncio

import cv2

from edulearn.services.errors import MetadataUnavailable
from edulearn.services.media.core import MediaCandidate, MediaMetadata
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class MetadataExtractor:
    """Reads decoded container metadata off the event loop, bounded by a timeout"""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def extract(self, candidate: MediaCandidate) -> MediaMetadata:
        if not candidate.path:
            raise MetadataUnavailable(
                "No local media file to read metadata from",
                details={"filename": candidate.filename},
            )

        try:
            metadata = await asyncio.wait_for(
                asyncio.to_thread(self._read_metadata, candidate.path),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Metadata extraction timed out after {self.timeout}s for {candidate.filename}")
            raise MetadataUnavailable(
                f"Media metadata not available after {self.timeout}s",
                details={"filename": candidate.filename, "timeout": self.timeout},
            )

        candidate.metadata = metadata
        logger.info(
            f"Video metadata extracted for {candidate.filename}: "
            f"{metadata.duration_seconds}s, {metadata.resolution}"
        )
        return metadata

    def _read_metadata(self, video_path: str) -> MediaMetadata:
        cap = cv2.VideoCapture(video_path)
        try:
            if not cap.isOpened():
                raise MetadataUnavailable(
                    "Cannot open video file",
                    details={"path": video_path},
                )

            fps = cap.get(cv2.CAP_PROP_FPS)
            frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
            width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        finally:
            cap.release()

        if width <= 0 or height <= 0:
            raise MetadataUnavailable(
                "Video reports no frame dimensions",
                details={"path": video_path, "width": width, "height": height},
            )

        duration = frame_count / fps if fps > 0 else 0
        return MediaMetadata(
            duration_seconds=int(round(duration)),
            width=width,
            height=height,
            fps=fps,
            frame_count=frame_count,
        )
