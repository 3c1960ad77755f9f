"""
Video upload pipeline

validate -> (metadata || thumbnail) -> upload media -> upload thumbnail
-> insert record -> finalize. Storage failures go through the fallback
strategy; persistence failures reach the caller with their category.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from edulearn.models.upload import UploadPhase, UploadProgressState, VideoUploadForm
from edulearn.models.user import Identity
from edulearn.models.video import VideoRecord
from edulearn.services.errors import MetadataUnavailable, PersistenceError, UploadError, UploadNotPermitted
from edulearn.services.fallback import FallbackStrategy
from edulearn.services.media import (
    MediaCandidate,
    MediaMetadata,
    MediaValidator,
    MetadataExtractor,
    ThumbnailGenerator,
    validate_form,
)
from edulearn.services.persistence_gateway import RemotePersistenceGateway
from edulearn.services.progress import ProgressReporter
from edulearn.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)


@dataclass
class UploadResult:
    record: VideoRecord
    used_fallback: bool
    metadata: Optional[MediaMetadata] = None
    progress: List[UploadProgressState] = field(default_factory=list)


class UploadPipeline:

    def __init__(
        self,
        validator: MediaValidator,
        metadata_extractor: MetadataExtractor,
        thumbnail_generator: ThumbnailGenerator,
        gateway: RemotePersistenceGateway,
        fallback: FallbackStrategy,
    ):
        self.validator = validator
        self.metadata_extractor = metadata_extractor
        self.thumbnail_generator = thumbnail_generator
        self.gateway = gateway
        self.fallback = fallback

    async def submit(
        self,
        candidate: MediaCandidate,
        form: VideoUploadForm,
        identity: Optional[Identity],
        reporter: ProgressReporter,
    ) -> UploadResult:
        """
        Publish a video

        Args:
            candidate: Received media file; released when this returns
            form: Title, description and catalog fields
            identity: Authenticated uploader
            reporter: Receives (phase, percentage) updates

        Returns:
            UploadResult with the stored record and whether placeholders were used

        Raises:
            UploadValidationError: before any progress event or network call; file
                limits are the server policy narrowed to the uploader's tier
            StorageError: storage failed and the fallback is disabled
            PersistenceError: the record insert was rejected
        """
        perf = PerformanceLogger("upload_pipeline")
        tasks: List[asyncio.Task] = []

        try:
            # Pre-flight: nothing below this block touches the network
            self.validator.check_extension(candidate.filename)
            self.validator.check_size(candidate.size_bytes)
            form = validate_form(form)
            if identity is None:
                raise UploadNotPermitted("You must be logged in to upload videos")
            policy = self.validator.restricted_to(identity.upload_limits())
            policy.check_extension(candidate.filename)
            policy.check_size(candidate.size_bytes)

            perf.start(f"upload {reporter.upload_id}")
            reporter.advance(UploadPhase.VALIDATING)
            if not identity.can_upload():
                raise UploadNotPermitted(
                    "Your account cannot upload videos right now",
                    details={
                        "role": identity.role,
                        "subscription_status": identity.subscription_status,
                        "upload_count_this_month": identity.upload_count_this_month,
                    },
                )

            metadata_task = asyncio.create_task(self._extract_metadata(candidate))
            thumbnail_task = asyncio.create_task(self.thumbnail_generator.generate(candidate))
            tasks = [metadata_task, thumbnail_task]

            async def upload_step():
                reporter.advance(UploadPhase.UPLOADING_MEDIA)
                transferred = 0

                def on_bytes(chunk_size: int):
                    nonlocal transferred
                    transferred += chunk_size
                    reporter.report_bytes(transferred, candidate.size_bytes)

                video_url = await self.gateway.upload_media(candidate, progress_callback=on_bytes)

                reporter.advance(UploadPhase.GENERATING_THUMBNAIL)
                thumbnail = await thumbnail_task
                thumbnail_url = await self.gateway.upload_thumbnail(thumbnail, candidate.filename)
                return video_url, thumbnail_url

            urls = await self.fallback.run(upload_step)

            reporter.advance(UploadPhase.PERSISTING_RECORD)
            metadata = await metadata_task
            record = await self.gateway.insert_record({
                "title": form.title,
                "description": form.description or "",
                "subject": form.subject,
                "grade_level": form.grade_level,
                "video_url": urls.video_url,
                "thumbnail_url": urls.thumbnail_url,
                "duration": metadata.duration_seconds if metadata else 0,
                "uploader_id": identity.id,
                "is_premium": form.is_premium,
                "premium_price": form.premium_price,
                "tags": form.tags,
            })

            reporter.advance(UploadPhase.FINALIZING)
            await self._record_upload(identity)
            reporter.complete()

            elapsed = perf.end(f"video {record.id}{' (fallback URLs)' if urls.used_fallback else ''}")
            perf.metric("upload_size_mb", round(candidate.size_bytes / (1024 * 1024), 2), "MB")
            perf.metric("upload_seconds", round(elapsed, 3), "s")

            return UploadResult(
                record=record,
                used_fallback=urls.used_fallback,
                metadata=metadata,
                progress=list(reporter.history),
            )

        except UploadError as e:
            if reporter.history:
                reporter.fail(e.message)
            logger.error(f"Upload {reporter.upload_id} failed: {e.error_code} - {e.message}")
            raise

        except Exception as e:
            if reporter.history:
                reporter.fail("Upload failed unexpectedly")
            logger.error(f"Upload {reporter.upload_id} failed: {type(e).__name__}: {str(e)}")
            raise

        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            candidate.release()

    async def _extract_metadata(self, candidate: MediaCandidate) -> Optional[MediaMetadata]:
        try:
            return await self.metadata_extractor.extract(candidate)
        except MetadataUnavailable as e:
            logger.warning(f"Metadata unavailable for {candidate.filename}, storing duration 0: {e}")
            return None

    async def _record_upload(self, identity: Identity) -> None:
        """Best effort: a failed counter update does not undo a published video"""
        try:
            await self.gateway.record_upload(identity.id)
        except PersistenceError as e:
            logger.warning(f"Failed to increment upload count for {identity.id}: {e}")
