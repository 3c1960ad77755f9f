"""
Tests for the hosted auth lookup and speech synthesis clients
"""

import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from edulearn.services.auth_service import AuthService
from edulearn.services.speech_service import SpeechService

from conftest import FakeStorageService

USER_ID = str(uuid.uuid4())


def http_response(status_code, json=None, content=b"", url="https://api.test/"):
    return httpx.Response(status_code, json=json, content=content if json is None else None,
                          request=httpx.Request("GET", url))


class TestAuthService:

    @pytest.mark.asyncio
    async def test_resolves_identity_with_profile(self, repository):
        repository.profiles[USER_ID] = {
            "full_name": "Ada Teacher",
            "role": "teacher",
            "subscription_status": "free",
            "is_trial": False,
            "upload_count_this_month": 3,
        }
        auth = AuthService("https://auth.test/", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(200, json={"id": USER_ID, "email": "ada@school.test"})
            identity = await auth.resolve("token-123")

        assert identity.id == USER_ID
        assert identity.role == "teacher"
        assert identity.upload_count_this_month == 3
        assert identity.can_upload()
        assert mock_get.call_args.args[0] == "https://auth.test/auth/v1/user"
        headers = mock_get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer token-123"
        assert headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_user_without_profile_is_a_student(self, repository):
        auth = AuthService("https://auth.test", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(200, json={"id": USER_ID, "email": "new@school.test"})
            identity = await auth.resolve("token-123")

        assert identity.role == "student"
        assert not identity.can_upload()

    @pytest.mark.asyncio
    async def test_rejected_token(self, repository):
        auth = AuthService("https://auth.test", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(401, json={"msg": "invalid JWT"})
            assert await auth.resolve("expired") is None

    @pytest.mark.asyncio
    async def test_non_json_body_is_rejection(self, repository):
        auth = AuthService("https://auth.test", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(200, content=b"<html>maintenance</html>")
            assert await auth.resolve("token") is None

    @pytest.mark.asyncio
    async def test_body_without_id_is_rejection(self, repository):
        auth = AuthService("https://auth.test", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = http_response(200, json={"email": "ghost@school.test"})
            assert await auth.resolve("token") is None

    @pytest.mark.asyncio
    async def test_network_failure(self, repository):
        auth = AuthService("https://auth.test", "anon-key", repository)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = httpx.ConnectError("connection refused")
            assert await auth.resolve("token") is None

    @pytest.mark.asyncio
    async def test_no_token(self, repository):
        assert await AuthService("https://auth.test", "anon-key", repository).resolve(None) is None


class TestSpeechService:

    @pytest.fixture
    def speech(self, storage):
        return SpeechService(api_key="xi-key", base_url="https://speech.test/v1", storage=storage)

    @pytest.mark.asyncio
    async def test_synthesize_stores_audio(self, speech, storage):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = http_response(200, content=b"ID3-mp3-bytes")
            url = await speech.synthesize("Hello class")

        key = url.replace("https://storage.test/", "")
        assert key.startswith("audio/") and key.endswith(".mp3")
        assert storage.objects[key]["content_type"] == "audio/mpeg"
        assert mock_post.call_args.args[0] == "https://speech.test/v1/text-to-speech/EXAVITQu4vr4xnSDxMaL"
        body = mock_post.call_args.kwargs["json"]
        assert body["model_id"] == "eleven_monolingual_v1"
        assert body["voice_settings"] == {"stability": 0.5, "similarity_boost": 0.5}
        assert mock_post.call_args.kwargs["headers"]["xi-api-key"] == "xi-key"

    @pytest.mark.asyncio
    async def test_api_failure_returns_none(self, speech, storage):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = http_response(429, json={"detail": "quota"})
            assert await speech.synthesize("Hello") is None

        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_storage_failure_returns_none(self):
        speech = SpeechService(api_key="xi-key", base_url="https://speech.test/v1", storage=FakeStorageService(fail=True))

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = http_response(200, content=b"mp3")
            assert await speech.synthesize("Hello") is None

    @pytest.mark.asyncio
    async def test_unconfigured(self, storage):
        speech = SpeechService(api_key="", base_url="https://speech.test/v1", storage=storage)

        assert speech.available is False
        assert await speech.synthesize("Hello") is None
        assert await speech.get_available_voices() == []

    @pytest.mark.asyncio
    async def test_video_summary_text(self, speech):
        with patch.object(speech, "synthesize", new_callable=AsyncMock) as mock_synthesize:
            mock_synthesize.return_value = "https://storage.test/audio/1.mp3"
            await speech.generate_video_summary("Cells", "x" * 300, voice_id="voice-2")

        text, voice_id = mock_synthesize.call_args.args
        assert text.startswith('This video, titled "Cells", provides ' + "x" * 200 + "...")
        assert text.endswith("Click play to start learning!")
        assert voice_id == "voice-2"
