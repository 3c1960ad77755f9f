"""
Preview frame capture

Grabs a single frame at min(offset, duration / 2) and encodes it as JPEG.
Any failure degrades to a stock image URL; this step never fails an upload.
"""

import asyncio
from io import BytesIO
from typing import Optional

import cv2
from PIL import Image

from edulearn.services.media.core import MediaCandidate, Thumbnail
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class ThumbnailGenerator:

    def __init__(self, fallback_url: str, offset_seconds: float = 5.0, quality: int = 80):
        self.fallback_url = fallback_url
        self.offset_seconds = offset_seconds
        self.quality = quality

    def seek_offset(self, duration: float) -> float:
        return min(self.offset_seconds, duration / 2)

    async def generate(self, candidate: MediaCandidate) -> Thumbnail:
        if not candidate.path:
            return self._fallback("no local media file")

        try:
            image_bytes, offset = await asyncio.to_thread(self._capture_frame, candidate.path)
        except Exception as e:
            return self._fallback(str(e))

        if image_bytes is None:
            return self._fallback("frame could not be decoded")

        logger.info(f"Thumbnail generated for {candidate.filename} at {offset:.2f}s ({len(image_bytes)} bytes)")
        return Thumbnail(image_bytes=image_bytes, offset_seconds=offset)

    def _capture_frame(self, video_path: str):
        cap = cv2.VideoCapture(video_path)
        try:
            if not cap.isOpened():
                raise ValueError("cannot open video file")

            fps = cap.get(cv2.CAP_PROP_FPS)
            frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
            duration = frame_count / fps if fps > 0 else 0
            if duration <= 0:
                raise ValueError("zero-duration media")

            offset = self.seek_offset(duration)
            frame_index = min(int(offset * fps), frame_count - 1)
            cap.set(cv2.CAP_PROP_POS_FRAMES, frame_index)
            ret, frame = cap.read()
        finally:
            cap.release()

        if not ret or frame is None:
            return None, offset

        return self._encode_jpeg(frame), offset

    def _encode_jpeg(self, frame) -> bytes:
        # OpenCV decodes BGR, Pillow expects RGB
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        pil_image = Image.fromarray(frame_rgb)
        buffer = BytesIO()
        pil_image.save(buffer, format="JPEG", quality=self.quality)
        return buffer.getvalue()

    def _fallback(self, reason: Optional[str]) -> Thumbnail:
        logger.warning(f"Thumbnail generation failed ({reason}), using stock image")
        return Thumbnail(image_bytes=None, fallback_url=self.fallback_url)
