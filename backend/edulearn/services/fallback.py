"""
Placeholder asset substitution when object storage is unreachable

Opt-in (ENABLE_STORAGE_FALLBACK). Only StorageError is absorbed; every other
error, PersistenceError included, propagates. Callers see `used_fallback`
on the result, so a placeholder publish is never mistaken for a real upload.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple

from edulearn.services.errors import StorageError
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FallbackResult:
    video_url: str
    thumbnail_url: str
    used_fallback: bool = False
    error: Optional[StorageError] = None


class FallbackStrategy:

    def __init__(self, video_url: str, thumbnail_url: str, enabled: bool = False):
        self.video_url = video_url
        self.thumbnail_url = thumbnail_url
        self.enabled = enabled

    async def run(self, upload_step: Callable[[], Awaitable[Tuple[str, str]]]) -> FallbackResult:
        """Await the (video_url, thumbnail_url) upload step, substituting placeholders on StorageError"""
        try:
            video_url, thumbnail_url = await upload_step()
        except StorageError as e:
            if not self.enabled:
                raise
            logger.warning(f"Storage upload failed, using placeholder URLs: {e}")
            return FallbackResult(
                video_url=self.video_url,
                thumbnail_url=self.thumbnail_url,
                used_fallback=True,
                error=e,
            )

        return FallbackResult(video_url=video_url, thumbnail_url=thumbnail_url)
