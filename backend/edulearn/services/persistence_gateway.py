"""
Remote persistence: blobs to object storage, rows to the relational store
"""

from typing import Any, Callable, Dict, Optional

from edulearn.models.video import VideoRecord
from edulearn.services.errors import StorageError
from edulearn.services.media.core import MediaCandidate, Thumbnail
from edulearn.services.storage_service import StorageService, generate_storage_key
from edulearn.services.video_repository import VideoRepository
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class RemotePersistenceGateway:

    def __init__(self, storage: StorageService, repository: VideoRepository):
        self.storage = storage
        self.repository = repository

    async def upload_media(
        self,
        candidate: MediaCandidate,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> str:
        """Upload the video blob under a fresh key; returns its URL or raises StorageError"""
        if not candidate.path:
            raise StorageError("No local media file to upload", details={"filename": candidate.filename})

        key = generate_storage_key(candidate.filename, prefix="videos")
        logger.info(f"Uploading {candidate.filename} ({candidate.size_bytes / (1024 * 1024):.1f}MB) as {key}")

        try:
            with open(candidate.path, "rb") as media_file:
                return await self.storage.put(
                    key,
                    media_file,
                    content_type=candidate.content_type,
                    progress_callback=progress_callback,
                )
        except OSError as e:
            raise StorageError(f"Could not read media file: {e}", details={"filename": candidate.filename}) from e

    async def upload_thumbnail(self, thumbnail: Thumbnail, source_filename: str) -> str:
        """Upload the preview JPEG; a stock-image thumbnail keeps its URL"""
        if thumbnail.is_fallback:
            return thumbnail.fallback_url

        key = generate_storage_key(f"{source_filename}.jpg", prefix="thumbnails")
        return await self.storage.put(key, thumbnail.image_bytes, content_type=thumbnail.content_type)

    async def insert_record(self, fields: Dict[str, Any]) -> VideoRecord:
        return await self.repository.insert_video(fields)

    async def record_upload(self, uploader_id: str) -> None:
        await self.repository.increment_upload_count(uploader_id)
