"""In-memory link store, used for tests, local runs and the CLI."""

import itertools
import logging
from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Optional, List, Dict

from .base import LinkStoreBase
from ..errors import TokenConflictError, LongUrlConflictError
from ..models import LinkRecord


class InMemoryLinkStore(LinkStoreBase):
    """Thread-safe in-memory link store.

    Enforces the same uniqueness rules as the PostgreSQL schema: one record
    per short token and at most one active record per long URL.
    """

    backend_name = "memory"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._records: Dict[str, LinkRecord] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()

    async def find_by_token(self, short_token: str) -> Optional[LinkRecord]:
        with self._lock:
            return self._records.get(short_token)

    async def find_by_long_url(self, long_url: str) -> Optional[LinkRecord]:
        with self._lock:
            return self._active_for_url(long_url)

    async def insert(self, record: LinkRecord) -> LinkRecord:
        with self._lock:
            if record.short_token in self._records:
                raise TokenConflictError(f"Short token '{record.short_token}' already exists")
            if record.is_active and self._active_for_url(record.long_url) is not None:
                raise LongUrlConflictError(f"An active record already exists for {record.long_url}")

            stored = replace(record, id=next(self._ids))
            self._records[stored.short_token] = stored

        self.logger.debug(f"Inserted link: {stored.short_token} -> {stored.long_url}")
        return stored

    async def update(self, record: LinkRecord) -> Optional[LinkRecord]:
        with self._lock:
            current = self._records.get(record.short_token)
            if current is None:
                return None

            if record.is_active and not current.is_active:
                other = self._active_for_url(current.long_url)
                if other is not None:
                    raise LongUrlConflictError(
                        f"An active record already exists for {current.long_url}"
                    )

            updated = replace(
                current,
                is_active=record.is_active,
                expires_at=record.expires_at,
                description=record.description,
            )
            self._records[updated.short_token] = updated
            return updated

    async def delete(self, short_token: str) -> bool:
        with self._lock:
            return self._records.pop(short_token, None) is not None

    async def exists(self, short_token: str) -> bool:
        with self._lock:
            return short_token in self._records

    async def count(self) -> int:
        with self._lock:
            return len(self._records)

    async def list_all(self) -> List[LinkRecord]:
        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.id)

    async def record_access(self, short_token: str, accessed_at: datetime) -> None:
        with self._lock:
            current = self._records.get(short_token)
            if current is None:
                return
            self._records[short_token] = replace(
                current,
                access_count=current.access_count + 1,
                last_accessed=accessed_at,
            )

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Nothing to release."""

    def _active_for_url(self, long_url: str) -> Optional[LinkRecord]:
        """Most recent active record for a URL. Caller must hold self._lock."""
        matches = [r for r in self._records.values() if r.long_url == long_url and r.is_active]
        if not matches:
            return None
        return max(matches, key=lambda r: r.id)
