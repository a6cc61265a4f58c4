"""
Redis-backed JSON cache for the assistant knowledge base and webhook ids.

Keys are namespaced under "servicehub:". Redis being down or CACHE_ENABLED
being false reads as a miss, so callers always have a fallback path.
"""
import json
import logging
from typing import Any, Callable, Optional

from .config import CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_KEY = "assistant:knowledge_base"
KNOWLEDGE_BASE_TTL = 3600
WEBHOOK_PROCESSED_PREFIX = "webhook_processed"
WEBHOOK_PROCESSED_TTL = 86400


class JSONCache:
    def __init__(self, namespace: str = "servicehub"):
        self.namespace = namespace
        self._client = None

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def _redis(self):
        if not CACHE_ENABLED:
            return None
        if self._client is None:
            try:
                self._client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self._client

    def get(self, key: str) -> Optional[Any]:
        client = self._redis()
        if client is None:
            return None
        try:
            raw = client.get(self._key(key))
        except Exception as e:
            logger.error(f"❌ Cache read failed for {key}: {e}")
            return None
        if raw is None:
            logger.debug(f"🔍 Cache miss: {key}")
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> bool:
        client = self._redis()
        if client is None:
            return False
        try:
            client.setex(self._key(key), ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"❌ Cache write failed for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._redis()
        if client is None:
            return False
        try:
            client.delete(self._key(key))
            logger.debug(f"🗑️ Cache dropped: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete failed for {key}: {e}")
            return False

    def get_or_build(self, key: str, build: Callable[[], Any], ttl: int) -> Any:
        """Return the cached value, or build it, store it and return it"""
        value = self.get(key)
        if value is not None:
            return value
        value = build()
        self.set(key, value, ttl)
        return value


cache = JSONCache()


def cached_knowledge_base(build: Callable[[], str]) -> str:
    return cache.get_or_build(KNOWLEDGE_BASE_KEY, build, KNOWLEDGE_BASE_TTL)


def invalidate_knowledge_base_cache() -> bool:
    """Drop the assistant knowledge base after services, feedback or FAQs change"""
    return cache.delete(KNOWLEDGE_BASE_KEY)


def is_webhook_processed(webhook_id: str) -> bool:
    return cache.get(f"{WEBHOOK_PROCESSED_PREFIX}:{webhook_id}") is not None


def mark_webhook_processed(webhook_id: str) -> bool:
    """Remember a delivered webhook id for a day so retries are ignored"""
    return cache.set(f"{WEBHOOK_PROCESSED_PREFIX}:{webhook_id}", True, WEBHOOK_PROCESSED_TTL)
