import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from fastapi import Request


class KeyedLocks:
    """One asyncio.Lock per key, dropped again once nobody waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def get_locks(request: Request) -> KeyedLocks:
    return request.app.state.locks
