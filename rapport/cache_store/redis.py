"""Redis-backed cache store for multi-instance deployments."""

import json
from typing import Optional

from rapport.cache_store.base import CacheEntry, CacheStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis")


class RedisCacheStore(CacheStore):
    """
    Stores entries as JSON under ``{prefix}{key}`` using a ``redis.asyncio`` client.

    ``retention_seconds`` only bounds how long Redis keeps a key around; the
    TTL that decides whether an entry is fresh is applied by ResponseCache.
    Redis errors degrade to cache misses and skipped writes.
    """

    def __init__(self, client, prefix: str = "rapport:", retention_seconds: int | None = None) -> None:
        logger.debug("Initializing RedisCacheStore")
        self.client = client
        self.prefix = prefix
        self.retention = retention_seconds

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @staticmethod
    def _dump(entry: CacheEntry) -> bytes:
        return json.dumps({"timestamp": entry.timestamp, "payload": entry.payload}).encode("utf-8")

    @staticmethod
    def _load(raw: bytes | str) -> Optional[CacheEntry]:
        """Deserialize an entry; corrupt values are treated as missing."""
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            data = json.loads(raw)
            return CacheEntry(timestamp=float(data["timestamp"]), payload=data["payload"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to deserialize cache entry: %s", exc)
            return None

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = await self.client.get(self._key(key))
        except Exception as exc:  # pragma: no cover - redis outage
            logger.error("Failed to read cache entry from Redis: %s", exc)
            return None
        if not raw:
            return None
        return self._load(raw)

    async def set_entry(self, key: str, entry: CacheEntry) -> None:
        try:
            if self.retention:
                await self.client.setex(self._key(key), self.retention, self._dump(entry))
            else:
                await self.client.set(self._key(key), self._dump(entry))
        except Exception as exc:  # pragma: no cover - redis outage
            logger.error("Failed to write cache entry to Redis: %s", exc)

    async def delete_entry(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except Exception as exc:  # pragma: no cover - redis outage
            logger.error("Failed to delete cache entry from Redis: %s", exc)

    async def clear(self) -> None:
        """Best-effort clear of every key under the configured prefix."""
        try:
            async for key in self.client.scan_iter(match=f"{self.prefix}*"):
                await self.client.delete(key)
        except Exception as exc:  # pragma: no cover - redis outage
            logger.error("Failed to clear cache entries from Redis: %s", exc)
