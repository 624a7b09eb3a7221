"""Process-local cache store."""

from typing import Dict, Optional

from rapport.cache_store.base import CacheEntry, CacheStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory")


class InMemoryCacheStore(CacheStore):
    """
    Plain dict keyed by ZIP.

    Entries are never evicted; a stale entry stays in memory until it is
    overwritten or the process restarts. No lock is taken: all access happens
    on the event loop thread.
    """

    def __init__(self) -> None:
        logger.debug("Initializing InMemoryCacheStore")
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def set_entry(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    async def delete_entry(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()
