"""Keyed mutual exclusion.

The stage machine runs every read-modify-write under the member's lock, so
double submissions (two ticket issuances, two check-in scans) are
serialised and the later call observes the earlier result. The campaign
dispatcher holds the campaign's lock for a whole dispatch, so an
overlapping retry waits and then finds the jobs already resolved.

Different keys never contend. A key's lock is dropped once nobody holds
or waits for it, so the registry only grows with the keys in use.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class LockRegistry:
    """Hands out one asyncio.Lock per id while the id is in use."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._users: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, key: UUID) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block."""
        # No await between lookup and registration, so contenders share one lock
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
