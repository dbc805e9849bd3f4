import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable, Tuple


class KeyedLocks:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[Hashable, Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def __len__(self):
        return len(self._locks)
