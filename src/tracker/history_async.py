from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

import structlog
from redis.asyncio import Redis

from tracker.history import HistoryBase
from tracker.store.base import AsyncHistoryStore
from tracker.store.local import AsyncLocalStore
from tracker.store.redis_zset import AsyncRedisZSetStore
from tracker.utils.interval import AsyncInterval
from tracker.utils.time import Duration, Instant, oldest_allowed, to_seconds

log = structlog.get_logger("history")


class AsyncHistoryTracker(HistoryBase):
    """
    asyncio counterpart of HistoryTracker over redis.asyncio.
    The cleaner is a task, so it only exists between start() and stop():

        async with AsyncHistoryTracker("orders", ttl_s=60, clean_interval_s=10, redis=r) as h:
            if not await h.seen(order_id):
                ...
    """
    def __init__(
        self,
        name: str,
        ttl_s: Duration,
        clean_interval_s: Duration,
        redis: Optional[Redis] = None,
        use_hashing: bool = False,
        *,
        hash_fn: Optional[Callable[[str], str]] = None,
        strict: bool = False,
    ):
        super().__init__(name, ttl_s, use_hashing, hash_fn=hash_fn, strict=strict)
        self._store: AsyncHistoryStore
        if redis is not None:
            self._store = AsyncRedisZSetStore(redis, self._collection_key, strict=strict)
        else:
            self._store = AsyncLocalStore()
        self._remote = redis is not None
        self._clean_interval_s = to_seconds(clean_interval_s)
        self._interval: Optional[AsyncInterval] = None
        # held across stop-then-start so concurrent callers never orphan a task
        self._interval_lock = asyncio.Lock()

    @property
    def is_remote(self) -> bool:
        return self._remote

    async def add(self, key: str, expires_at: Optional[Instant] = None) -> None:
        await self._store.put(self._member(key), self._stamp(expires_at))

    async def has(self, key: str) -> bool:
        return self._is_fresh(await self._store.score(self._member(key)))

    async def get(self, key: str) -> tuple[Optional[datetime], bool]:
        return self._as_found(await self._store.score(self._member(key)))

    async def remove(self, key: str) -> None:
        await self._store.delete(self._member(key))

    async def seen(self, key: str) -> bool:
        if await self.has(key):
            return True
        await self.add(key)
        return False

    async def clean(self) -> int:
        removed = await self._store.delete_older_than(oldest_allowed(self._ttl_s))
        if removed:
            log.debug("history_cleaned", key=self._collection_key, removed=removed)
        return removed

    # ---------- cleaner lifecycle ----------

    async def set_clean_interval(self, interval: Duration) -> None:
        """Cancel the running cleaner task (if any) and start one at `interval`."""
        async with self._interval_lock:
            self._clean_interval_s = to_seconds(interval)
            if self._interval is not None:
                await self._interval.stop()
                self._interval = None
            if self._clean_interval_s <= 0:
                log.debug("cleaner_disabled", key=self._collection_key)
                return
            self._interval = AsyncInterval(
                self._clean_tick, self._clean_interval_s, name=f"clean:{self._collection_key}"
            ).start()

    @property
    def cleaner_running(self) -> bool:
        return self._interval is not None and self._interval.running

    async def start(self) -> None:
        await self.set_clean_interval(self._clean_interval_s)

    async def stop(self) -> None:
        async with self._interval_lock:
            if self._interval is not None:
                await self._interval.stop()
                self._interval = None

    async def __aenter__(self) -> "AsyncHistoryTracker":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _clean_tick(self) -> bool:
        await self.clean()
        return True
