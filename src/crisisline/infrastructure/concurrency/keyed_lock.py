"""
Keyed Lock

Per-key asyncio serialization. Work on the same key (an external
message id, a subject, a user) runs one at a time in arrival order;
work on different keys never waits on each other.

ARCHITECTURE: There is deliberately no global lock. A stuck
webhook for one message must never block unrelated crisis work.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLock:
    """
    A lazily created asyncio.Lock per key.

    Locks are dropped once no task holds or waits for them, so the
    map does not grow with every message ever seen. asyncio.Lock
    wakes waiters in FIFO order, which gives arrival-order processing.

    Usage:
        locks = KeyedLock()
        async with locks.hold(external_id):
            ...
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: defaultdict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
