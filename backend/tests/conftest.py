"""
Pytest configuration and fixtures for testing
"""

import shutil
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from edulearn.config.base import Settings
from edulearn.main import ServiceContainer, create_app
from edulearn.models.user import Identity
from edulearn.models.video import VideoRecord
from edulearn.services.assistant_service import ContentAssistant
from edulearn.services.errors import StorageError
from edulearn.services.fallback import FallbackStrategy
from edulearn.services.media import MediaCandidate, MediaValidator, MetadataExtractor, ThumbnailGenerator
from edulearn.services.persistence_gateway import RemotePersistenceGateway
from edulearn.services.speech_service import SpeechService
from edulearn.services.upload_pipeline import UploadPipeline
from edulearn.services.upload_status_cache import UploadStatusCache

FALLBACK_VIDEO_URL = "https://cdn.test/placeholder.mp4"
FALLBACK_THUMBNAIL_URL = "https://cdn.test/placeholder.jpg"


class FakeStorageService:
    """In-memory stand-in for StorageService"""

    def __init__(self, fail: bool = False):
        self.enabled = True
        self.fail = fail
        self.objects: Dict[str, Dict[str, Any]] = {}

    async def put(self, key, data, content_type, cache_control="max-age=3600", progress_callback=None):
        if self.fail:
            raise StorageError("bucket unreachable", details={"key": key})

        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        if progress_callback:
            progress_callback(len(payload))
        self.objects[key] = {
            "data": bytes(payload),
            "content_type": content_type,
            "cache_control": cache_control,
        }
        return f"https://storage.test/{key}"


class FakeVideoRepository:
    """In-memory stand-in for VideoRepository"""

    def __init__(self):
        self.videos: Dict[str, VideoRecord] = {}
        self.upload_counts: Dict[str, int] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.insert_error: Optional[Exception] = None
        self.upload_count_error: Optional[Exception] = None

    async def insert_video(self, fields: Dict[str, Any]) -> VideoRecord:
        if self.insert_error:
            raise self.insert_error
        now = datetime.now(timezone.utc)
        record = VideoRecord(id=str(uuid.uuid4()), view_count=0, created_at=now, updated_at=now, **fields)
        self.videos[record.id] = record
        return record

    async def get_video(self, video_id: str) -> Optional[VideoRecord]:
        return self.videos.get(video_id)

    async def list_videos(self, subject=None, grade_level=None, limit=50, offset=0) -> List[VideoRecord]:
        videos = [
            v for v in self.videos.values()
            if (not subject or v.subject == subject) and (not grade_level or v.grade_level == grade_level)
        ]
        videos.sort(key=lambda v: v.created_at, reverse=True)
        return videos[offset:offset + limit]

    async def increment_view_count(self, video_id: str) -> Optional[int]:
        video = self.videos.get(video_id)
        if not video:
            return None
        video.view_count += 1
        return video.view_count

    async def increment_upload_count(self, user_id: str) -> None:
        if self.upload_count_error:
            raise self.upload_count_error
        self.upload_counts[user_id] = self.upload_counts.get(user_id, 0) + 1

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.profiles.get(user_id)


class FakeChatClient:
    """Returns a canned completion; `reply=None` behaves like an API failure"""

    def __init__(self, reply: Optional[str] = None, available: bool = True):
        self.reply = reply
        self.available = available
        self.calls: List[List[Dict[str, str]]] = []

    async def complete(self, messages, model=None):
        self.calls.append(messages)
        return self.reply


class FakeAuthService:
    def __init__(self, identities: Dict[str, Identity]):
        self.identities = identities

    async def resolve(self, token):
        return self.identities.get(token) if token else None


@pytest.fixture
def settings():
    """Settings with every external service unconfigured"""
    return Settings(
        DEBUG=True,
        AWS_ACCESS_KEY_ID="",
        AWS_SECRET_ACCESS_KEY="",
        CHAT_API_KEY="",
        SPEECH_API_KEY="",
        AUTH_API_URL="",
        REDIS_HOST="",
        ENABLE_STORAGE_FALLBACK=False,
        FALLBACK_VIDEO_URL=FALLBACK_VIDEO_URL,
        FALLBACK_THUMBNAIL_URL=FALLBACK_THUMBNAIL_URL,
    )


@pytest.fixture(scope="session")
def sample_video_path(tmp_path_factory):
    """3 second 64x48 MJPG clip (10 fps, 30 frames)"""
    path = tmp_path_factory.mktemp("media") / "sample.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    for i in range(30):
        frame = np.full((48, 64, 3), (i * 8) % 256, dtype=np.uint8)
        writer.write(frame)
    writer.release()
    return str(path)


@pytest.fixture
def validator():
    return MediaValidator(["mp4", "mov", "avi", "wmv"], 100 * 1024 * 1024)


@pytest.fixture
def make_candidate(tmp_path, sample_video_path):
    """Copy the sample clip to a fresh temp file and wrap it as a candidate"""

    def _make(filename: str = "lecture.mp4", size_bytes: Optional[int] = None, content: Optional[bytes] = None):
        path = tmp_path / f"{uuid.uuid4().hex}-{filename}"
        if content is None:
            shutil.copyfile(sample_video_path, path)
        else:
            path.write_bytes(content)
        extension = filename.rsplit(".", 1)[-1].lower()
        return MediaCandidate(
            filename=filename,
            extension=extension,
            size_bytes=size_bytes if size_bytes is not None else path.stat().st_size,
            path=str(path),
        )

    return _make


@pytest.fixture
def teacher_identity():
    return Identity(id=str(uuid.uuid4()), email="teacher@school.test", full_name="Ada Teacher", role="teacher")


@pytest.fixture
def student_identity():
    return Identity(id=str(uuid.uuid4()), email="student@school.test", role="student")


@pytest.fixture
def storage():
    return FakeStorageService()


@pytest.fixture
def repository():
    return FakeVideoRepository()


@pytest.fixture
def build_pipeline(validator, storage, repository):
    """Pipeline over the fake storage / repository; fallback on or off per test"""

    def _build(fallback_enabled: bool = False, metadata_timeout: float = 10.0):
        return UploadPipeline(
            validator=validator,
            metadata_extractor=MetadataExtractor(timeout=metadata_timeout),
            thumbnail_generator=ThumbnailGenerator(fallback_url=FALLBACK_THUMBNAIL_URL),
            gateway=RemotePersistenceGateway(storage, repository),
            fallback=FallbackStrategy(FALLBACK_VIDEO_URL, FALLBACK_THUMBNAIL_URL, enabled=fallback_enabled),
        )

    return _build


@pytest.fixture
def chat():
    return FakeChatClient(
        reply="TITLE: Fractions Made Easy\nDESCRIPTION: Learn to add fractions.\nTAGS: math, fractions"
    )


@pytest.fixture
def container(settings, validator, storage, repository, build_pipeline, chat, teacher_identity, student_identity):
    return ServiceContainer(
        settings=settings,
        db=None,
        repository=repository,
        storage=storage,
        auth=FakeAuthService({"teacher-token": teacher_identity, "student-token": student_identity}),
        assistant=ContentAssistant(chat),
        speech=SpeechService(api_key="", base_url="https://speech.test/v1", storage=storage),
        validator=validator,
        pipeline=build_pipeline(),
        status_cache=UploadStatusCache(max_size=10, ttl_seconds=60),
    )


@pytest.fixture
def client(container):
    """Create a test client for FastAPI app"""
    with TestClient(create_app(container)) as test_client:
        yield test_client
