"""
Upload status cache with TTL and size limits

Holds the latest progress state per upload id so clients can poll while
an upload runs. A Redis mirror, when present, lets other workers answer.
"""

import time
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional

from edulearn.models.upload import UploadProgressState
from edulearn.services.redis_service import RedisService
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)


class UploadStatusCache:
    """Thread-safe upload status cache with TTL and LRU eviction"""

    def __init__(self, max_size: int = 200, ttl_seconds: int = 3600, redis_service: Optional[RedisService] = None):
        """
        Args:
            max_size: Maximum number of uploads tracked in memory
            ttl_seconds: Time to live for entries (default 1 hour)
            redis_service: Optional shared mirror
        """
        self.cache: OrderedDict[str, Dict[str, Any]] = OrderedDict()
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.redis_service = redis_service
        self._lock = threading.RLock()

        logger.info(f"UploadStatusCache initialized: max_size={max_size}, ttl={ttl_seconds}s")

    def record(self, state: UploadProgressState) -> None:
        """Progress subscriber: store the latest state for its upload"""
        value = state.model_dump(mode="json")
        self.set(state.upload_id, value)
        if self.redis_service:
            self.redis_service.set_json(f"upload_status:{state.upload_id}", value, expire=self.ttl_seconds)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._cleanup_expired()

            if key in self.cache:
                del self.cache[key]
            elif len(self.cache) >= self.max_size:
                oldest_key, _ = self.cache.popitem(last=False)
                logger.warning(f"Evicted oldest upload status from cache: {oldest_key}")

            self.cache[key] = {"value": value, "_timestamp": time.time()}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self.cache.get(key)
            if entry is not None:
                if time.time() - entry["_timestamp"] > self.ttl_seconds:
                    logger.info(f"Upload status expired: {key}")
                    del self.cache[key]
                else:
                    self.cache.move_to_end(key)
                    return entry["value"]

        if self.redis_service:
            value = self.redis_service.get_json(f"upload_status:{key}")
            if value:
                logger.info(f"Restored upload status {key} from Redis")
                return value
        return None

    def _cleanup_expired(self) -> None:
        """Remove expired entries (called with lock held)"""
        current_time = time.time()
        expired_keys = [
            key for key, entry in self.cache.items()
            if current_time - entry["_timestamp"] > self.ttl_seconds
        ]
        for key in expired_keys:
            del self.cache[key]

    def __len__(self) -> int:
        with self._lock:
            self._cleanup_expired()
            return len(self.cache)
