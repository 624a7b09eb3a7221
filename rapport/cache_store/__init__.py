"""Response cache backends."""

from .base import CacheEntry, CacheStore
from .memory import InMemoryCacheStore
from .redis import RedisCacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
