"""
Tests for object storage and the persistence gateway
"""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from edulearn.config.base import Settings
from edulearn.services.errors import StorageError
from edulearn.services.media import MediaCandidate, Thumbnail
from edulearn.services.persistence_gateway import RemotePersistenceGateway
from edulearn.services.storage_service import StorageService, generate_storage_key


def storage_settings(**overrides):
    values = dict(
        AWS_ACCESS_KEY_ID="AKIATEST",
        AWS_SECRET_ACCESS_KEY="secret",
        AWS_REGION="eu-central-1",
        S3_BUCKET="edulearn-test",
        AWS_ENDPOINT_URL=None,
        STORAGE_PUBLIC_BASE_URL=None,
        STORAGE_SIGNED_URLS=False,
    )
    values.update(overrides)
    return Settings(**values)


def mock_s3(service: StorageService) -> MagicMock:
    s3 = MagicMock()
    s3.upload_fileobj = AsyncMock()
    service.session = MagicMock()
    service.session.client.return_value.__aenter__.return_value = s3
    return s3


class TestStorageKeys:

    def test_key_format(self):
        key = generate_storage_key("My Lecture.MOV", prefix="videos")
        assert re.fullmatch(r"videos/\d{13}-[0-9a-z]{6}\.MOV", key)

    def test_keys_are_unique(self):
        keys = {generate_storage_key("a.mp4") for _ in range(50)}
        assert len(keys) == 50

    def test_missing_extension(self):
        assert generate_storage_key("noext", prefix="audio").endswith(".bin")


class TestStorageService:

    def test_disabled_without_credentials(self):
        service = StorageService(storage_settings(AWS_ACCESS_KEY_ID=""))
        assert service.enabled is False

    @pytest.mark.asyncio
    async def test_put_on_disabled_storage_raises(self):
        service = StorageService(storage_settings(AWS_ACCESS_KEY_ID=""))

        with pytest.raises(StorageError):
            await service.put("videos/a.mp4", b"data", "video/mp4")

    @pytest.mark.asyncio
    async def test_put_uploads_with_cache_control(self):
        service = StorageService(storage_settings())
        s3 = mock_s3(service)
        callback = MagicMock()

        url = await service.put("videos/a.mp4", b"data", "video/mp4", progress_callback=callback)

        assert url == "https://edulearn-test.s3.eu-central-1.amazonaws.com/videos/a.mp4"
        _, bucket, key = s3.upload_fileobj.call_args.args
        assert (bucket, key) == ("edulearn-test", "videos/a.mp4")
        kwargs = s3.upload_fileobj.call_args.kwargs
        assert kwargs["ExtraArgs"] == {"ContentType": "video/mp4", "CacheControl": "max-age=3600"}
        assert kwargs["Callback"] is callback

    @pytest.mark.asyncio
    async def test_client_error_becomes_storage_error(self):
        service = StorageService(storage_settings())
        s3 = mock_s3(service)
        s3.upload_fileobj.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )

        with pytest.raises(StorageError) as exc_info:
            await service.put("videos/a.mp4", b"data", "video/mp4")

        assert exc_info.value.details["bucket"] == "edulearn-test"

    def test_public_url_variants(self):
        assert StorageService(
            storage_settings(STORAGE_PUBLIC_BASE_URL="https://cdn.edulearn.test/")
        ).get_public_url("videos/a.mp4") == "https://cdn.edulearn.test/videos/a.mp4"

        assert StorageService(
            storage_settings(AWS_ENDPOINT_URL="http://localhost:9000")
        ).get_public_url("videos/a.mp4") == "http://localhost:9000/edulearn-test/videos/a.mp4"

    def test_signed_urls(self):
        service = StorageService(storage_settings(STORAGE_SIGNED_URLS=True, STORAGE_SIGNED_URL_EXPIRY=600))

        url = service.get_public_url("videos/a.mp4")

        assert "videos/a.mp4" in url
        assert "Expires=" in url or "X-Amz-Expires=600" in url


class TestRemotePersistenceGateway:

    @pytest.mark.asyncio
    async def test_upload_media_streams_file(self, storage, repository, make_candidate):
        candidate = make_candidate("lecture.mp4")
        gateway = RemotePersistenceGateway(storage, repository)
        chunks = []

        url = await gateway.upload_media(candidate, progress_callback=chunks.append)

        key = url.replace("https://storage.test/", "")
        assert key.startswith("videos/") and key.endswith(".mp4")
        assert storage.objects[key]["content_type"] == "video/mp4"
        assert sum(chunks) == candidate.size_bytes

    @pytest.mark.asyncio
    async def test_upload_media_without_file(self, storage, repository):
        gateway = RemotePersistenceGateway(storage, repository)

        with pytest.raises(StorageError):
            await gateway.upload_media(MediaCandidate(filename="a.mp4", extension="mp4", size_bytes=1))

    @pytest.mark.asyncio
    async def test_upload_media_missing_file(self, storage, repository):
        gateway = RemotePersistenceGateway(storage, repository)
        candidate = MediaCandidate(filename="a.mp4", extension="mp4", size_bytes=1, path="/nonexistent/a.mp4")

        with pytest.raises(StorageError):
            await gateway.upload_media(candidate)

    @pytest.mark.asyncio
    async def test_upload_thumbnail(self, storage, repository):
        gateway = RemotePersistenceGateway(storage, repository)

        url = await gateway.upload_thumbnail(Thumbnail(image_bytes=b"\xff\xd8jpeg"), "lecture.mp4")

        key = url.replace("https://storage.test/", "")
        assert key.startswith("thumbnails/") and key.endswith(".jpg")
        assert storage.objects[key]["content_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_fallback_thumbnail_is_not_uploaded(self, storage, repository):
        gateway = RemotePersistenceGateway(storage, repository)

        url = await gateway.upload_thumbnail(
            Thumbnail(image_bytes=None, fallback_url="https://cdn.test/stock.jpg"), "lecture.mp4"
        )

        assert url == "https://cdn.test/stock.jpg"
        assert storage.objects == {}
