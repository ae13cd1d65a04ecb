"""Business logic service for the short link service."""

import asyncio
import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Optional, Dict, Any, List, Set, Callable, Awaitable, TypeVar

from .tokens import TokenGenerator
from .database.base import LinkStoreBase
from .database.cache import ResolutionCache
from .common.validators import (
    is_valid_url,
    normalize_url_key,
    url_domain,
    MAX_CREATED_BY_LENGTH,
    MAX_DESCRIPTION_LENGTH,
)
from .errors import (
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
    TokenConflictError,
    LongUrlConflictError,
    TokenSpaceExhaustedError,
)
from .locks import KeyedLock
from .models import LinkRecord, CreateResult, CreateStatus, utcnow


T = TypeVar("T")

_UNSET: Any = object()

TOP_DOMAINS_LIMIT = 5


class LinkService:
    """Service layer for short link business logic.

    The only component that assigns tokens and mutates stored records. Every
    write invalidates the token's cache entry and the aggregate views,
    whether or not the store call succeeded.
    """

    def __init__(
        self,
        store: LinkStoreBase,
        cache: Optional[ResolutionCache] = None,
        token_generator: Optional[TokenGenerator] = None,
        logger: Optional[logging.Logger] = None,
        max_collision_retries: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize link service.

        Args:
            store: Durable link store
            cache: Resolution cache (an in-memory one is created if omitted)
            token_generator: Optional token generator
            logger: Optional logger
            max_collision_retries: Maximum token attempts per creation
            clock: Returns the current UTC time
        """
        if max_collision_retries < 1:
            raise ValueError("max_collision_retries must be at least 1")

        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self.cache = cache or ResolutionCache(logger=self.logger)
        self.generator = token_generator or TokenGenerator()
        self.max_collision_retries = max_collision_retries
        self._clock = clock

        self._url_locks = KeyedLock()
        self._pending: Set[asyncio.Task] = set()
        # Bumped on every invalidation; readers only populate the cache if
        # no write landed while they were reading the store.
        self._generation = 0

    async def resolve(self, short_token: str, track_access: bool = True) -> Optional[LinkRecord]:
        """Resolve a short token.

        Args:
            short_token: The token to resolve
            track_access: Whether to schedule access bookkeeping

        Returns:
            The record, or None if it does not exist, is inactive or expired

        Raises:
            StoreUnavailableError: If the store cannot be reached on a cache miss
        """
        if not TokenGenerator.is_valid_format(short_token):
            self.logger.debug(f"Rejected malformed short token: {short_token!r}")
            return None

        record, hit = await self.cache.get_link(short_token)

        if hit:
            self.logger.debug(f"Cache hit for {short_token}")
        else:
            generation = self._generation
            record = await self._guard("resolve", short_token, self.store.find_by_token(short_token))
            if generation == self._generation:
                if record is None:
                    await self.cache.set_absent(short_token)
                else:
                    await self.cache.set_link(record)

        if record is None or not record.is_resolvable(self._clock()):
            self.logger.info(f"Short token not found: {short_token}")
            return None

        if track_access:
            self._schedule_access(short_token)

        return record

    async def create(
        self,
        long_url: str,
        *,
        created_by: Optional[str] = None,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> CreateResult:
        """Create a short link, or return the existing one for the URL.

        Args:
            long_url: Absolute http(s) URL
            created_by: Optional creator metadata
            description: Optional description
            expires_at: Optional expiry time (must be in the future)

        Returns:
            CreateResult with status CREATED or DUPLICATE

        Raises:
            InvalidInputError: If the input is malformed
            TokenSpaceExhaustedError: If no free token was found
            StoreUnavailableError: If the store fails
        """
        self._validate_create(long_url, created_by, description, expires_at)

        async with self._url_locks.acquire(normalize_url_key(long_url)):
            existing = await self._find_reusable(long_url)
            if existing is not None:
                self.logger.info(f"Duplicate long URL, reusing {existing.short_token} for {long_url}")
                return CreateResult(existing, CreateStatus.DUPLICATE)

            return await self._insert_new(long_url, created_by, description, expires_at)

    async def get_link(self, short_token: str) -> LinkRecord:
        """Get a record's metadata straight from the store.

        Unlike resolve(), inactive and expired records are returned.

        Raises:
            NotFoundError: If the token does not exist
        """
        record = await self._guard("get_link", short_token, self.store.find_by_token(short_token))
        if record is None:
            raise NotFoundError(short_token)
        return record

    async def update(
        self,
        short_token: str,
        *,
        is_active: Any = _UNSET,
        expires_at: Any = _UNSET,
        description: Any = _UNSET,
    ) -> LinkRecord:
        """Update the mutable fields of a record.

        Only the given fields change; pass expires_at=None or
        description=None to clear them.

        Raises:
            NotFoundError: If the token does not exist
            InvalidInputError: If a value is invalid, or re-activation would
                give the long URL a second active record
        """
        if is_active is not _UNSET and not isinstance(is_active, bool):
            raise InvalidInputError("is_active must be true or false")
        if expires_at is not _UNSET:
            self._validate_expiry(expires_at)
        if description is not _UNSET:
            self._validate_description(description)

        changes: Dict[str, Any] = {}
        if is_active is not _UNSET:
            changes["is_active"] = is_active
        if expires_at is not _UNSET:
            changes["expires_at"] = expires_at
        if description is not _UNSET:
            changes["description"] = description

        # long_url never changes, so the lock key can come from an unlocked read
        long_url = (await self.get_link(short_token)).long_url

        async with self._url_locks.acquire(normalize_url_key(long_url)):
            try:
                current = await self.get_link(short_token)
                updated = await self._guard(
                    "update", short_token, self.store.update(replace(current, **changes))
                )
            except LongUrlConflictError as e:
                raise InvalidInputError(
                    f"Cannot activate '{short_token}': another active link exists for {long_url}"
                ) from e
            finally:
                await self._invalidate(short_token)

        if updated is None:
            raise NotFoundError(short_token)

        self.logger.info(f"Updated short URL {short_token}: {sorted(changes)}")
        return updated

    async def deactivate(self, short_token: str) -> LinkRecord:
        """Soft-delete a record; it is kept but no longer resolves."""
        return await self.update(short_token, is_active=False)

    async def activate(self, short_token: str) -> LinkRecord:
        return await self.update(short_token, is_active=True)

    async def delete(self, short_token: str) -> bool:
        """Hard-delete a record.

        Returns:
            True if deleted, False if the token did not exist
        """
        try:
            deleted = await self._guard("delete", short_token, self.store.delete(short_token))
        finally:
            await self._invalidate(short_token)

        if deleted:
            self.logger.info(f"Deleted short URL: {short_token}")
        return deleted

    async def list_links(self) -> List[LinkRecord]:
        """List every record ordered by id (cache-backed)."""
        records, hit = await self.cache.get_all()
        if hit:
            return records

        generation = self._generation
        records = await self._guard("list_links", "*", self.store.list_all())
        if generation == self._generation:
            await self.cache.set_all(records)
        return records

    async def stats(self) -> Dict[str, Any]:
        """Get aggregate statistics (cache-backed, lagging view).

        Returns:
            Dictionary with total_urls, active_urls, created_today,
            total_accesses, top_domains and generated_at
        """
        stats, hit = await self.cache.get_stats()
        if hit:
            return stats

        generation = self._generation
        total = await self._guard("stats", "*", self.store.count())
        records = await self._guard("stats", "*", self.store.list_all())
        stats = self._compute_stats(records, total)
        if generation == self._generation:
            await self.cache.set_stats(stats)
        return stats

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.store.health_check()
        cache_healthy = await self.cache.ping()

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def wait_for_pending(self) -> None:
        """Wait for scheduled access bookkeeping to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        """Close service connections."""
        await self.wait_for_pending()
        await self.store.close()
        await self.cache.close()

    def _validate_create(
        self,
        long_url: str,
        created_by: Optional[str],
        description: Optional[str],
        expires_at: Optional[datetime],
    ) -> None:
        is_valid, error = is_valid_url(long_url)
        if not is_valid:
            raise InvalidInputError(f"Invalid URL: {error}")

        if created_by is not None and len(created_by) > MAX_CREATED_BY_LENGTH:
            raise InvalidInputError(f"created_by is too long (max {MAX_CREATED_BY_LENGTH} characters)")

        self._validate_description(description)
        self._validate_expiry(expires_at)

    @staticmethod
    def _validate_description(description: Optional[str]) -> None:
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidInputError(f"Description is too long (max {MAX_DESCRIPTION_LENGTH} characters)")

    def _validate_expiry(self, expires_at: Optional[datetime]) -> None:
        if expires_at is None:
            return
        if not isinstance(expires_at, datetime) or expires_at.tzinfo is None:
            raise InvalidInputError("expires_at must be a timezone-aware datetime")
        if expires_at <= self._clock():
            raise InvalidInputError("expires_at must be in the future")

    async def _find_reusable(self, long_url: str) -> Optional[LinkRecord]:
        """Find the active record for a URL, retiring it if it has expired.

        Caller must hold the URL's lock.
        """
        existing = await self._guard("create", long_url, self.store.find_by_long_url(long_url))
        if existing is None or not existing.is_expired(self._clock()):
            return existing

        # An expired record would otherwise block the one-active-record rule
        self.logger.info(f"Retiring expired short URL {existing.short_token} for {long_url}")
        try:
            await self._guard("create", long_url, self.store.update(replace(existing, is_active=False)))
        finally:
            await self._invalidate(existing.short_token)
        return None

    async def _insert_new(
        self,
        long_url: str,
        created_by: Optional[str],
        description: Optional[str],
        expires_at: Optional[datetime],
    ) -> CreateResult:
        """Mint a token and persist a new record. Caller must hold the URL's lock."""
        for attempt in range(1, self.max_collision_retries + 1):
            short_token = self.generator.generate()

            if await self._guard("create", long_url, self.store.exists(short_token)):
                self.logger.debug(f"Token {short_token} already taken (attempt {attempt})")
                continue

            record = LinkRecord(
                short_token=short_token,
                long_url=long_url,
                created_at=self._clock(),
                expires_at=expires_at,
                created_by=created_by,
                description=description,
            )

            try:
                saved = await self._guard("create", long_url, self.store.insert(record))
            except TokenConflictError:
                self.logger.debug(f"Token {short_token} taken on insert (attempt {attempt})")
                continue
            except LongUrlConflictError:
                # another writer (e.g. another process) won the race
                winner = await self._guard("create", long_url, self.store.find_by_long_url(long_url))
                if winner is not None:
                    self.logger.info(f"Lost creation race for {long_url}, reusing {winner.short_token}")
                    return CreateResult(winner, CreateStatus.DUPLICATE)
                continue
            finally:
                await self._invalidate(short_token)

            self.logger.info(f"Created short URL: {saved.short_token} -> {long_url}")
            return CreateResult(saved, CreateStatus.CREATED)

        self.logger.error(
            f"Token space exhausted creating short URL for {long_url} "
            f"after {self.max_collision_retries} attempts"
        )
        raise TokenSpaceExhaustedError(
            f"Unable to find a free token after {self.max_collision_retries} attempts"
        )

    async def _invalidate(self, short_token: str) -> None:
        self._generation += 1
        await self.cache.invalidate_link(short_token)

    async def _guard(self, operation: str, subject: str, call: Awaitable[T]) -> T:
        """Await a store call, logging store failures with context."""
        try:
            return await call
        except StoreUnavailableError as e:
            self.logger.error(f"Store unavailable during {operation} ({subject}): {e}")
            raise

    def _schedule_access(self, short_token: str) -> None:
        task = asyncio.create_task(self._record_access(short_token))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_access(self, short_token: str) -> None:
        try:
            await self.store.record_access(short_token, self._clock())
        except StoreUnavailableError as e:
            self.logger.warning(f"Access bookkeeping failed for {short_token}: {e}")

    def _compute_stats(self, records: List[LinkRecord], total: int) -> Dict[str, Any]:
        now = self._clock()
        today = now.date()
        domains = Counter(url_domain(r.long_url) for r in records)
        domains.pop("", None)

        return {
            "total_urls": total,
            "active_urls": sum(1 for r in records if r.is_resolvable(now)),
            "created_today": sum(1 for r in records if r.created_at.date() == today),
            "total_accesses": sum(r.access_count for r in records),
            "top_domains": [
                {"domain": domain, "count": count}
                for domain, count in domains.most_common(TOP_DOMAINS_LIMIT)
            ],
            "generated_at": now.isoformat(),
        }
