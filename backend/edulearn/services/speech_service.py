"""
Text-to-speech via the ElevenLabs API; audio is stored next to the videos
"""

from typing import List, Optional

import httpx

from edulearn.services.errors import StorageError
from edulearn.services.storage_service import StorageService, generate_storage_key
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class SpeechService:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        storage: StorageService,
        default_voice_id: str = "EXAVITQu4vr4xnSDxMaL",
        model_id: str = "eleven_monolingual_v1",
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.default_voice_id = default_voice_id
        self.model_id = model_id
        self.timeout = timeout

        if not api_key:
            logger.warning("Speech API key not configured - speech generation disabled")

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def get_available_voices(self) -> List[dict]:
        if not self.api_key:
            return []

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.base_url}/voices",
                    headers={"xi-api-key": self.api_key},
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"Voice listing failed: {e}")
                return []

        return response.json().get("voices", [])

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> Optional[str]:
        """Render `text` to MP3 and return the stored audio URL, or None when unavailable"""
        if not self.api_key:
            return None

        voice_id = voice_id or self.default_voice_id
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    f"{self.base_url}/text-to-speech/{voice_id}",
                    headers={
                        "xi-api-key": self.api_key,
                        "Content-Type": "application/json",
                        "Accept": "audio/mpeg",
                    },
                    json={
                        "text": text,
                        "model_id": self.model_id,
                        "voice_settings": {
                            "stability": 0.5,
                            "similarity_boost": 0.5,
                        },
                    },
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.warning(f"Speech generation failed: {e.response.status_code}")
                return None
            except httpx.RequestError as e:
                logger.warning(f"Speech generation error: {e}")
                return None

        try:
            return await self.storage.put(
                generate_storage_key("speech.mp3", prefix="audio"),
                response.content,
                content_type="audio/mpeg",
            )
        except StorageError as e:
            logger.warning(f"Could not store generated speech: {e}")
            return None

    async def generate_video_summary(
        self, title: str, description: str, voice_id: Optional[str] = None
    ) -> Optional[str]:
        summary = description[:200] + "..." if description else "educational content on this topic"
        text = f'This video, titled "{title}", provides {summary}. Click play to start learning!'
        return await self.synthesize(text, voice_id)
