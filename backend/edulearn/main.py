"""
FastAPI entry point for the EduLearn upload service
"""

import os
import tempfile
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

import asyncpg
from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from edulearn.config.base import Settings
from edulearn.config.environment import active_settings
from edulearn.models.assist import (
    OptimizationRequest,
    OptimizationResponse,
    SpeechResponse,
    StudyPlanRequest,
    TutorChatRequest,
)
from edulearn.models.upload import UploadResponse, VideoUploadForm
from edulearn.models.user import CREATOR_LIMITS, FREE_LIMITS, PREMIUM_LIMITS, Identity
from edulearn.models.video import GRADE_LEVELS, SUBJECTS, VideoRecord
from edulearn.services.assistant_service import ChatCompletionClient, ContentAssistant
from edulearn.services.auth_service import AuthService
from edulearn.services.database import DatabaseManager
from edulearn.services.errors import (
    FileTooLarge,
    PersistenceCategory,
    PersistenceError,
    StorageError,
    UploadNotPermitted,
    UploadValidationError,
)
from edulearn.services.fallback import FallbackStrategy
from edulearn.services.media import (
    MediaCandidate,
    MediaValidator,
    MetadataExtractor,
    ThumbnailGenerator,
    infer_extension,
    validate_form,
)
from edulearn.services.persistence_gateway import RemotePersistenceGateway
from edulearn.services.progress import ProgressReporter
from edulearn.services.redis_service import RedisService
from edulearn.services.speech_service import SpeechService
from edulearn.services.storage_service import StorageService
from edulearn.services.upload_pipeline import UploadPipeline
from edulearn.services.upload_status_cache import UploadStatusCache
from edulearn.services.video_repository import VideoRepository
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024


@dataclass
class ServiceContainer:
    settings: Settings
    db: Optional[DatabaseManager]
    repository: VideoRepository
    storage: StorageService
    auth: AuthService
    assistant: ContentAssistant
    speech: SpeechService
    validator: MediaValidator
    pipeline: UploadPipeline
    status_cache: UploadStatusCache
    redis: Optional[RedisService] = None


def build_container(settings: Settings) -> ServiceContainer:
    """Wire every collaborator from settings; nothing connects until startup"""
    db = DatabaseManager(settings.DATABASE_URL, max_size=settings.DATABASE_POOL_MAX)
    repository = VideoRepository(db)
    storage = StorageService(settings)
    redis_service = RedisService(settings) if settings.REDIS_HOST else None
    validator = MediaValidator(settings.ALLOWED_EXTENSIONS, settings.MAX_FILE_SIZE)

    pipeline = UploadPipeline(
        validator=validator,
        metadata_extractor=MetadataExtractor(timeout=settings.METADATA_TIMEOUT),
        thumbnail_generator=ThumbnailGenerator(
            fallback_url=settings.FALLBACK_THUMBNAIL_URL,
            offset_seconds=settings.THUMBNAIL_OFFSET_SECONDS,
            quality=settings.THUMBNAIL_JPEG_QUALITY,
        ),
        gateway=RemotePersistenceGateway(storage, repository),
        fallback=FallbackStrategy(
            video_url=settings.FALLBACK_VIDEO_URL,
            thumbnail_url=settings.FALLBACK_THUMBNAIL_URL,
            enabled=settings.ENABLE_STORAGE_FALLBACK,
        ),
    )

    return ServiceContainer(
        settings=settings,
        db=db,
        repository=repository,
        storage=storage,
        auth=AuthService(settings.AUTH_API_URL, settings.AUTH_API_KEY, repository),
        assistant=ContentAssistant(
            ChatCompletionClient(
                api_key=settings.CHAT_API_KEY,
                base_url=settings.CHAT_BASE_URL,
                model=settings.CHAT_MODEL,
                max_tokens=settings.CHAT_MAX_TOKENS,
            )
        ),
        speech=SpeechService(
            api_key=settings.SPEECH_API_KEY,
            base_url=settings.SPEECH_BASE_URL,
            storage=storage,
            default_voice_id=settings.SPEECH_DEFAULT_VOICE_ID,
            model_id=settings.SPEECH_MODEL_ID,
        ),
        validator=validator,
        pipeline=pipeline,
        status_cache=UploadStatusCache(
            max_size=settings.UPLOAD_STATUS_CACHE_SIZE,
            ttl_seconds=settings.UPLOAD_STATUS_TTL,
            redis_service=redis_service,
        ),
        redis=redis_service,
    )


def validation_status_code(error: UploadValidationError) -> int:
    if isinstance(error, FileTooLarge):
        return 413
    if isinstance(error, UploadNotPermitted):
        return 403
    return 400


def persistence_status_code(error: PersistenceError) -> int:
    if error.category == PersistenceCategory.UNAVAILABLE:
        return 503
    if error.category in (PersistenceCategory.AUTHORIZATION, PersistenceCategory.IDENTITY_MISMATCH):
        return 403
    if error.category == PersistenceCategory.CONSTRAINT:
        return 422
    return 502


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def receive_upload(file: UploadFile, validator: MediaValidator) -> MediaCandidate:
    """Stream the multipart file to a temp file, enforcing the size limit as bytes arrive"""
    filename = file.filename or ""
    fd, path = tempfile.mkstemp(prefix="edulearn-", suffix=f".{infer_extension(filename)}")
    size = 0
    try:
        with os.fdopen(fd, "wb") as temp_file:
            while True:
                chunk = await file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                validator.check_size(size)
                temp_file.write(chunk)
        return validator.validate(filename, size, path=path)
    except (UploadValidationError, OSError):
        os.remove(path)
        raise


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the API. Without a container one is wired from APP_ENV settings and owns the DB pool."""
    owns_container = container is None
    if container is None:
        container = build_container(active_settings())
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_container and container.db:
            try:
                await container.db.connect()
                if settings.DEBUG:
                    await container.db.apply_schema()
            except (asyncpg.PostgresError, OSError) as e:
                logger.error(f"Database connection failed, video endpoints unavailable: {e}")
        logger.info(f"{settings.APP_NAME} v{settings.VERSION} started")
        yield
        if owns_container and container.db:
            await container.db.disconnect()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Educational video uploads with thumbnails, metadata and AI assist",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.container = container

    if settings.DEBUG:
        # Development: allow all origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            max_age=86400,
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_HOSTS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
            max_age=86400,
        )

    @app.exception_handler(UploadValidationError)
    async def upload_validation_handler(request: Request, exc: UploadValidationError):
        return JSONResponse(status_code=validation_status_code(exc), content=exc.to_dict())

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=persistence_status_code(exc), content=exc.to_dict())

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError):
        return JSONResponse(status_code=502, content=exc.to_dict())

    async def current_identity(authorization: Optional[str] = Header(None)) -> Optional[Identity]:
        return await container.auth.resolve(bearer_token(authorization))

    async def require_identity(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
        if identity is None:
            raise HTTPException(status_code=401, detail="Authentication required")
        return identity

    @app.get("/")
    async def root():
        return {"message": settings.APP_NAME, "version": settings.VERSION}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "uploads_tracked": len(container.status_cache),
            "services": {
                "database": "available" if container.db and container.db.connected else "unavailable",
                "storage": "available" if container.storage.enabled else "unavailable",
                "redis": "available" if container.redis and container.redis.ping() else "unavailable",
                "chat": "available" if container.assistant.chat.available else "unavailable",
                "speech": "available" if container.speech.available else "unavailable",
            },
        }

    @app.get("/catalog")
    async def catalog():
        return {
            "subjects": SUBJECTS,
            "grade_levels": GRADE_LEVELS,
            "formats": container.validator.allowed_extensions,
            "max_file_size": container.validator.max_bytes,
            "tiers": [limits.model_dump() for limits in (FREE_LIMITS, PREMIUM_LIMITS, CREATOR_LIMITS)],
        }

    @app.post("/upload", response_model=UploadResponse)
    async def upload_video(
        file: UploadFile = File(...),
        title: str = Form(""),
        description: str = Form(""),
        subject: str = Form("Mathematics"),
        grade_level: str = Form("High School (9-12)"),
        tags: str = Form(""),
        is_premium: bool = Form(False),
        premium_price: Optional[float] = Form(None),
        identity: Identity = Depends(require_identity),
    ):
        """Upload a video with its catalog fields (main upload endpoint)"""
        upload_id = str(uuid.uuid4())
        validator = container.validator.restricted_to(identity.upload_limits())
        logger.info(f"Starting upload {upload_id} for {file.filename} by {identity.id}")

        # Reject before buffering anything
        validator.check_extension(file.filename or "")
        if file.size is not None:
            validator.check_size(file.size)
        form = VideoUploadForm(
            title=title,
            description=description,
            subject=subject,
            grade_level=grade_level,
            tags=tags,
            is_premium=is_premium,
            premium_price=premium_price,
        )
        validate_form(form)

        candidate = await receive_upload(file, validator)
        reporter = ProgressReporter(upload_id)
        reporter.subscribe(container.status_cache.record)

        result = await container.pipeline.submit(candidate, form, identity, reporter)

        return UploadResponse(
            upload_id=upload_id,
            status="completed",
            video=result.record,
            used_fallback=result.used_fallback,
            metadata=result.metadata.to_dict() if result.metadata else None,
            progress=result.progress,
        )

    @app.get("/upload/status/{upload_id}")
    async def get_upload_status(upload_id: str):
        status = container.status_cache.get(upload_id)
        if not status:
            raise HTTPException(status_code=404, detail="Upload not found")
        return status

    @app.post("/upload/optimize", response_model=OptimizationResponse)
    async def optimize_upload(request: OptimizationRequest, identity: Identity = Depends(require_identity)):
        result = await container.assistant.optimize(
            context=request.context,
            subject=request.subject,
            grade_level=request.grade_level,
            current_title=request.title,
            current_description=request.description,
            current_tags=request.tags,
        )
        return OptimizationResponse(
            success=result.success,
            title=result.title,
            description=result.description,
            tags=result.tags,
            error=result.error.message if result.error else None,
        )

    @app.get("/videos", response_model=List[VideoRecord])
    async def list_videos(
        subject: Optional[str] = None,
        grade_level: Optional[str] = None,
        limit: int = Query(50, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        return await container.repository.list_videos(subject, grade_level, limit, offset)

    async def load_video(video_id: uuid.UUID) -> VideoRecord:
        video = await container.repository.get_video(str(video_id))
        if not video:
            raise HTTPException(status_code=404, detail="Video not found")
        return video

    @app.get("/videos/{video_id}", response_model=VideoRecord)
    async def get_video(video: VideoRecord = Depends(load_video)):
        return video

    @app.post("/videos/{video_id}/view")
    async def record_view(video_id: uuid.UUID):
        view_count = await container.repository.increment_view_count(str(video_id))
        if view_count is None:
            raise HTTPException(status_code=404, detail="Video not found")
        return {"video_id": str(video_id), "view_count": view_count}

    @app.post("/assist/chat")
    async def tutor_chat(request: TutorChatRequest):
        response = await container.assistant.generate_educational_response(
            request.message, request.subject, request.context
        )
        if response is None:
            raise HTTPException(status_code=503, detail="AI assistant unavailable")
        return {"response": response}

    @app.post("/assist/study-plan")
    async def study_plan(request: StudyPlanRequest):
        plan = await container.assistant.generate_study_plan(request.subject, request.current_level, request.goals)
        if plan is None:
            raise HTTPException(status_code=503, detail="AI assistant unavailable")
        return {"plan": plan}

    @app.get("/videos/{video_id}/analysis")
    async def video_analysis(video: VideoRecord = Depends(load_video)):
        analysis = await container.assistant.generate_video_analysis(
            video.title, video.description or "", video.subject
        )
        if analysis is None:
            raise HTTPException(status_code=503, detail="AI assistant unavailable")
        return {"video_id": video.id, "analysis": analysis}

    @app.get("/speech/voices")
    async def speech_voices():
        return {"available": container.speech.available, "voices": await container.speech.get_available_voices()}

    @app.post("/speech/summary/{video_id}", response_model=SpeechResponse)
    async def speech_summary(video: VideoRecord = Depends(load_video), voice_id: Optional[str] = None):
        if not container.speech.available:
            return SpeechResponse(audio_url=None, available=False)

        audio_url = await container.speech.generate_video_summary(video.title, video.description or "", voice_id)
        if audio_url is None:
            raise HTTPException(status_code=502, detail="Speech generation failed")
        return SpeechResponse(audio_url=audio_url, available=True)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.container.settings.API_HOST, port=app.state.container.settings.API_PORT)
