"""Resolution cache for the short link service.

The cache holds three families of entries:

    * <prefix>:link:<token>  -> serialized LinkRecord, or an absent marker
    * <prefix>:links:all     -> serialized list of every LinkRecord
    * <prefix>:links:stats   -> serialized statistics document

Values are serialized to JSON before they reach a backend, so a reader
either gets a complete value or a miss. Backends only store strings with a
TTL: MemoryCacheBackend keeps them in-process, RedisCacheBackend in Redis.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..models import LinkRecord


DEFAULT_LINK_TTL = 30 * 60  # 30 minutes
DEFAULT_NEGATIVE_TTL = 60  # 1 minute
DEFAULT_LIST_TTL = 5 * 60  # 5 minutes
DEFAULT_STATS_TTL = 60 * 60  # 1 hour

_ABSENT = {"absent": True}


class CacheKeySchema:
    """Provide namespaced cache keys."""

    def __init__(self, prefix: Optional[str] = "shortlink"):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def link_key(self, short_token: str) -> str:
        return self._key(f"link:{short_token}")

    def all_links_key(self) -> str:
        return self._key("links:all")

    def stats_key(self) -> str:
        return self._key("links:stats")


class CacheBackend(ABC):
    """String key/value store with per-entry TTL."""

    name = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> bool:
        """Store a value for ttl seconds."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        """Release backend resources."""


class MemoryCacheBackend(CacheBackend):
    """In-process TTL cache.

    Entries are (deadline, value) pairs; expired entries are dropped when
    read. The clock is injectable so tests can move time forward.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 100_000):
        self._clock = clock
        self._max_entries = max_entries
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = Lock()

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            deadline, value = entry
            if deadline <= self._clock():
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        with self._lock:
            now = self._clock()
            if len(self._entries) >= self._max_entries and key not in self._entries:
                self._evict_expired(now)
                if len(self._entries) >= self._max_entries:
                    # drop the entry closest to expiry
                    oldest = min(self._entries, key=lambda k: self._entries[k][0])
                    del self._entries[oldest]
            self._entries[key] = (now + ttl, value)
            return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        """Caller must hold self._lock."""
        expired = [k for k, (deadline, _) in self._entries.items() if deadline <= now]
        for k in expired:
            del self._entries[k]


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache.

    Read and write errors degrade to a miss or a no-op so a Redis outage
    never fails a request; they are logged instead.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache backend.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            client: Optional pre-built client (takes precedence over redis_url)
            logger: Optional logger instance
        """
        if client is None and redis_url is None:
            raise ValueError("Either redis_url or client is required")

        self.redis_url = redis_url
        self.logger = logger or logging.getLogger(__name__)
        self.client = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            self.logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        try:
            await self.client.setex(key, ttl, value)
            return True
        except RedisError as e:
            self.logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.client.delete(key) > 0
        except RedisError as e:
            # the stale entry lives until its TTL runs out
            self.logger.error(f"Cache invalidation failed for {key}: {e}")
            return False

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            self.logger.error(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
        self.logger.info("Redis connection closed")


class ResolutionCache:
    """Read-through cache for token lookups and aggregate views."""

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        prefix: Optional[str] = "shortlink",
        link_ttl: int = DEFAULT_LINK_TTL,
        negative_ttl: int = DEFAULT_NEGATIVE_TTL,
        list_ttl: int = DEFAULT_LIST_TTL,
        stats_ttl: int = DEFAULT_STATS_TTL,
        logger: Optional[logging.Logger] = None,
    ):
        if negative_ttl >= link_ttl:
            raise ValueError("negative_ttl must be shorter than link_ttl")

        self.backend = backend or MemoryCacheBackend()
        self.keys = CacheKeySchema(prefix)
        self.link_ttl = link_ttl
        self.negative_ttl = negative_ttl
        self.list_ttl = list_ttl
        self.stats_ttl = stats_ttl
        self.logger = logger or logging.getLogger(__name__)

        self.logger.info(
            f"Resolution cache ({self.backend.name}) link_ttl={link_ttl}s "
            f"negative_ttl={negative_ttl}s list_ttl={list_ttl}s stats_ttl={stats_ttl}s"
        )

    # Generic contract

    async def get(self, key: str) -> Tuple[Any, bool]:
        """Get a value.

        Returns:
            (value, True) on a hit, (None, False) on a miss
        """
        payload = await self.backend.get(key)
        if payload is None:
            return None, False
        try:
            return json.loads(payload), True
        except ValueError:
            self.logger.warning(f"Discarding undecodable cache entry {key}")
            await self.backend.delete(key)
            return None, False

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self.backend.set(key, json.dumps(value, separators=(",", ":")), ttl)

    async def invalidate(self, key: str) -> None:
        await self.backend.delete(key)

    # Token entries

    async def get_link(self, short_token: str) -> Tuple[Optional[LinkRecord], bool]:
        """Look up a token.

        Returns:
            (record, True) on a positive hit, (None, True) on a negative hit,
            (None, False) on a miss
        """
        value, hit = await self.get(self.keys.link_key(short_token))
        if not hit:
            return None, False
        if value == _ABSENT:
            return None, True
        return LinkRecord.from_dict(value), True

    async def set_link(self, record: LinkRecord) -> None:
        await self.set(self.keys.link_key(record.short_token), record.to_dict(), self.link_ttl)

    async def set_absent(self, short_token: str) -> None:
        await self.set(self.keys.link_key(short_token), _ABSENT, self.negative_ttl)

    async def invalidate_link(self, short_token: str) -> None:
        """Drop a token entry together with the aggregate views."""
        await self.invalidate(self.keys.link_key(short_token))
        await self.invalidate(self.keys.all_links_key())
        await self.invalidate(self.keys.stats_key())
        self.logger.debug(f"Invalidated cache entries for short token: {short_token}")

    # Aggregate entries

    async def get_all(self) -> Tuple[Optional[List[LinkRecord]], bool]:
        value, hit = await self.get(self.keys.all_links_key())
        if not hit:
            return None, False
        return [LinkRecord.from_dict(item) for item in value], True

    async def set_all(self, records: List[LinkRecord]) -> None:
        await self.set(self.keys.all_links_key(), [r.to_dict() for r in records], self.list_ttl)

    async def get_stats(self) -> Tuple[Optional[Dict[str, Any]], bool]:
        return await self.get(self.keys.stats_key())

    async def set_stats(self, stats: Dict[str, Any]) -> None:
        await self.set(self.keys.stats_key(), stats, self.stats_ttl)

    async def ping(self) -> bool:
        return await self.backend.ping()

    async def close(self) -> None:
        await self.backend.close()
