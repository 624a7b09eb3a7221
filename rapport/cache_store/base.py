"""Shared protocol and types for response cache backends."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class CacheEntry:
    """Cached payload with the wall-clock time (epoch seconds) it was produced."""
    timestamp: float
    payload: Dict[str, Any]


class CacheStore(Protocol):
    """Protocol for cache backends. Freshness is judged by ResponseCache, not the store."""

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry or None."""

    async def set_entry(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key``, replacing any previous one."""

    async def delete_entry(self, key: str) -> None:
        """Delete an entry without raising if it is absent."""

    async def clear(self) -> None:
        """Remove every entry."""
