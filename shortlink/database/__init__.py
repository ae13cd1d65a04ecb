"""Storage and cache layer for the short link service."""

from .base import LinkStoreBase
from .memory import InMemoryLinkStore
from .postgres import PostgresLinkStore
from .cache import ResolutionCache, MemoryCacheBackend, RedisCacheBackend, CacheKeySchema

__all__ = [
    "LinkStoreBase",
    "InMemoryLinkStore",
    "PostgresLinkStore",
    "ResolutionCache",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "CacheKeySchema",
]
