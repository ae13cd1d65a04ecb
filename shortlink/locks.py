"""Per-key asyncio locks."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List


class KeyedLock:
    """A table of asyncio locks, one per key, created on demand.

    Entries are reference-counted and removed once no task holds or waits
    for them, so the table only grows with the number of keys in flight.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def acquire(self, key: str):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def keys_in_flight(self) -> List[str]:
        return list(self._locks)
