"""TTL-checked response cache over a pluggable backing store."""
import copy
import time
from typing import Any, Callable, Dict, Optional

import redis.asyncio as redis

from rapport.cache_store import CacheEntry, CacheStore, InMemoryCacheStore, RedisCacheStore
from rapport.config import Settings, settings as default_settings
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="response_cache")


class ResponseCache:
    """
    Memoizes assembled responses per ZIP for ``ttl_seconds``.

    Expiry is passive: an entry older than the TTL reads as a miss but is
    left in the store until the next successful run overwrites it. Payloads
    are copied on the way in and out so callers never share mutable state
    with the store.
    """

    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl = ttl_seconds
        self.clock = clock

    @property
    def backend(self) -> str:
        return type(self.store).__name__

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp < self.ttl

    async def get(self, zip_code: str) -> Optional[Dict[str, Any]]:
        """Return the cached payload if it is younger than the TTL, else None."""
        entry = await self.store.get_entry(zip_code)
        if entry is None:
            return None
        if not self.is_fresh(entry):
            logger.debug("Cache entry for %s is stale", zip_code)
            return None
        return copy.deepcopy(entry.payload)

    async def set(self, zip_code: str, payload: Dict[str, Any], timestamp: float | None = None) -> None:
        """Store ``payload`` unconditionally, stamped with ``timestamp`` (default: now)."""
        stamp = self.clock() if timestamp is None else timestamp
        await self.store.set_entry(zip_code, CacheEntry(timestamp=stamp, payload=copy.deepcopy(payload)))

    async def clear(self) -> None:
        await self.store.clear()


def build_response_cache(settings: Settings | None = None) -> ResponseCache:
    """Pick the backing store from configuration: Redis when a URL is set, memory otherwise."""
    settings = settings or default_settings
    ttl = settings.cache_ttl_seconds
    if settings.cache_redis_url:
        client = redis.Redis.from_url(settings.cache_redis_url)
        logger.info("Using RedisCacheStore at %s", mask_url(settings.cache_redis_url))
        store: CacheStore = RedisCacheStore(client, prefix=settings.cache_key_prefix, retention_seconds=ttl)
    else:
        logger.info("Using InMemoryCacheStore")
        store = InMemoryCacheStore()
    return ResponseCache(store, ttl_seconds=ttl)
