"""
Per-room mutual exclusion
房间级互斥锁

Every mutating room operation runs inside ``room_lock(code)``. In a single
process an ``asyncio.Lock`` per room code is enough; with Redis configured the
lock is a Redis lock so several workers serialize on the same room.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from redis.exceptions import LockError

from guesswho.core.config import settings
from guesswho.core.exceptions import StorageUnavailable
from guesswho.core.redis_client import get_redis

logger = logging.getLogger(__name__)


class RoomLockManager:
    """Hands out one lock per room code"""

    def __init__(self, redis_client=None):
        self.redis_client = redis_client
        self._locks: Dict[str, asyncio.Lock] = {}
        # callers holding or waiting on each in-process lock
        self._holders: Dict[str, int] = {}

    def _checkout_local(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1
        return lock

    def _return_local(self, key: str):
        """Drop the entry once nobody holds or waits on it"""
        self._holders[key] -= 1
        if not self._holders[key]:
            del self._holders[key]
            del self._locks[key]

    @asynccontextmanager
    async def room_lock(self, key: str) -> AsyncIterator[None]:
        client = self.redis_client if self.redis_client is not None else get_redis()
        if client is None:
            lock = self._checkout_local(key)
            try:
                async with lock:
                    yield
            finally:
                self._return_local(key)
            return

        lock = client.lock(
            f"guesswho:room-lock:{key}",
            timeout=settings.REDIS_LOCK_TIMEOUT,
            blocking_timeout=settings.REDIS_LOCK_BLOCKING_TIMEOUT,
        )
        acquired = await lock.acquire()
        if not acquired:
            logger.warning(f"Timed out waiting for room lock {key}")
            raise StorageUnavailable("Room is busy, try again")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # lock expired while held; the work already committed
                logger.warning(f"Room lock {key} expired before release: {e}")

    def __len__(self):
        return len(self._locks)


# Global lock manager instance
room_locks = RoomLockManager()
