"""
Redis mirror for upload status

Failures are logged and reported as misses; Redis is never required for
an upload to succeed.
"""

import json
from typing import Dict, Optional

import redis

from edulearn.config.base import Settings
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class RedisService:
    def __init__(self, settings: Settings):
        self.redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD or None,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2
        )
        logger.info(f"Using Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis PING failed: {str(e)}")
            return False

    def get_json(self, key: str) -> Optional[Dict]:
        """Get JSON object by key"""
        try:
            value = self.redis_client.get(key)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Redis GET JSON failed for key {key}: {str(e)}")
            return None

    def set_json(self, key: str, value: Dict, expire: Optional[int] = None) -> bool:
        """Set JSON object with optional expiration"""
        try:
            return bool(self.redis_client.set(key, json.dumps(value), ex=expire))
        except redis.RedisError as e:
            logger.error(f"Redis SET JSON failed for key {key}: {str(e)}")
            return False
