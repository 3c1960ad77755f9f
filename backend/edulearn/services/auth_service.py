"""
Hosted auth lookup: bearer token -> Identity
"""

from typing import Optional

import httpx

from edulearn.models.user import Identity
from edulearn.services.video_repository import VideoRepository
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class AuthService:
    def __init__(self, auth_url: str, api_key: str, repository: VideoRepository, timeout: float = 10.0):
        self.auth_url = auth_url.rstrip("/")
        self.api_key = api_key
        self.repository = repository
        self.timeout = timeout

        if not self.auth_url:
            logger.warning("Auth API URL not configured - all requests will be anonymous")

    async def resolve(self, token: Optional[str]) -> Optional[Identity]:
        """Return the caller's identity, or None for a missing / rejected token"""
        if not token or not self.auth_url:
            return None

        user = await self._fetch_user(token)
        if not user:
            return None

        profile = await self.repository.get_profile(user["id"]) or {}
        return Identity(
            id=str(user["id"]),
            email=user.get("email") or profile.get("email") or "",
            full_name=profile.get("full_name"),
            role=profile.get("role") or "student",
            subscription_status=profile.get("subscription_status") or "free",
            is_trial=bool(profile.get("is_trial", False)),
            upload_count_this_month=profile.get("upload_count_this_month") or 0,
        )

    async def _fetch_user(self, token: str) -> Optional[dict]:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{self.auth_url}/auth/v1/user",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "apikey": self.api_key,
                    },
                    timeout=self.timeout,
                )
                response.raise_for_status()
                user = response.json()
            except httpx.HTTPStatusError as e:
                logger.warning(f"Auth token rejected: {e.response.status_code}")
                return None
            except httpx.RequestError as e:
                logger.error(f"Auth request failed: {str(e)}")
                return None
            except ValueError as e:
                logger.warning(f"Auth response is not JSON: {str(e)}")
                return None

        if not isinstance(user, dict) or not user.get("id"):
            logger.warning("Auth response has no user id, treating token as rejected")
            return None
        return user
