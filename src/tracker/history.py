# src/tracker/history.py
from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional

import structlog
from redis import Redis

from tracker.errors import InvalidKeyPartError
from tracker.store.base import HistoryStore
from tracker.store.local import LocalStore
from tracker.store.redis_zset import RedisZSetStore
from tracker.utils.interval import Interval, every
from tracker.utils.keys import create_key, hash_it, nid
from tracker.utils.time import (
    Duration,
    Instant,
    oldest_allowed,
    to_epoch,
    to_seconds,
    utc_dt,
    utc_now_s,
)

log = structlog.get_logger("history")

KEY_PREFIX = "history"

def collection_key_for(name: str) -> str:
    """history:{name}, or history:hist_{random} when the name is unusable."""
    try:
        return create_key([name], prefix=KEY_PREFIX, sep=":")
    except InvalidKeyPartError:
        key = f"{KEY_PREFIX}:{nid('hist', 16)}"
        log.info("history_key_autogenerated", key=key)
        return key


class HistoryBase:
    """
    Backend-independent part of a tracker: TTL, hashing and key naming.
    Subclasses own the store and the cleaner.
    """
    def __init__(
        self,
        name: str,
        ttl_s: Duration,
        use_hashing: bool = False,
        *,
        hash_fn: Optional[Callable[[str], str]] = None,
        strict: bool = False,
    ):
        ttl = to_seconds(ttl_s)
        if ttl <= 0:
            raise ValueError("ttl_s must be > 0")
        self._ttl_s = ttl
        self._use_hashing = use_hashing or hash_fn is not None
        self._hash_fn: Callable[[str], str] = hash_fn or hash_it
        self._collection_key = collection_key_for(name)
        self._strict = strict

    # ---------- config ----------

    @property
    def collection_key(self) -> str:
        return self._collection_key

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    @property
    def hashing_enabled(self) -> bool:
        return self._use_hashing

    @property
    def strict(self) -> bool:
        """Fixed at construction; the Redis store is built with it."""
        return self._strict

    def set_time_to_live(self, ttl: Duration) -> None:
        """Applies to later has/clean calls. Non-positive values are ignored."""
        secs = to_seconds(ttl)
        if secs <= 0:
            log.debug("ttl_ignored", key=self._collection_key, ttl_s=secs)
            return
        self._ttl_s = secs

    def set_hash_function(self, fn: Optional[Callable[[str], str]]) -> None:
        """Install `fn` and turn hashing on. None is ignored."""
        if fn is None:
            log.debug("hash_function_ignored", key=self._collection_key)
            return
        self._hash_fn = fn
        self._use_hashing = True

    def use_hashing(self, flag: bool) -> None:
        # existing entries keep whatever form they were written in
        self._use_hashing = flag

    # ---------- helpers ----------

    def _member(self, key: str) -> str:
        return self._hash_fn(key) if self._use_hashing else key

    def _stamp(self, when: Optional[Instant]) -> float:
        return utc_now_s() if when is None else to_epoch(when)

    def _is_fresh(self, score: Optional[float]) -> bool:
        return score is not None and score >= oldest_allowed(self._ttl_s)

    @staticmethod
    def _as_found(score: Optional[float]) -> tuple[Optional[datetime], bool]:
        if score is None:
            return None, False
        return utc_dt(score), True


class HistoryTracker(HistoryBase):
    """
    Remembers keys for a TTL so repeated work can be skipped.

    With `redis` given, entries live in the sorted set `collection_key`
    (shared across processes); otherwise in a process-local map. The backend
    is chosen once and never switches. A background Interval runs clean()
    every `clean_interval_s`; call close() (or use `with`) to stop it.

    Redis failures never raise by default: they are logged and read as
    "not seen". Pass strict=True to get BackendUnavailableError instead.
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
        self._store: HistoryStore
        if redis is not None:
            self._store = RedisZSetStore(redis, self._collection_key, strict=strict)
        else:
            self._store = LocalStore()
        self._remote = redis is not None
        self._interval: Optional[Interval] = None
        self._interval_lock = threading.Lock()
        self.set_clean_interval(clean_interval_s)

    @property
    def is_remote(self) -> bool:
        return self._remote

    # ---------- entries ----------

    def add(self, key: str, expires_at: Optional[Instant] = None) -> None:
        """
        Record `key` with instant `expires_at` (default: now). has() keeps
        reporting it until expires_at + ttl. Last write wins.
        """
        self._store.put(self._member(key), self._stamp(expires_at))

    def has(self, key: str) -> bool:
        """True if `key` is stored with expires_at >= now - ttl. Never deletes."""
        return self._is_fresh(self._store.score(self._member(key)))

    def get(self, key: str) -> tuple[Optional[datetime], bool]:
        """
        (expires_at, found). Ignores the TTL window, so an entry can be
        found here while has() already says False.
        """
        return self._as_found(self._store.score(self._member(key)))

    def remove(self, key: str) -> None:
        self._store.delete(self._member(key))

    def seen(self, key: str) -> bool:
        """has(key); when False, also add(key) so the next call says True."""
        if self.has(key):
            return True
        self.add(key)
        return False

    def clean(self) -> int:
        """Evict entries whose expires_at < now - ttl. Returns the count removed."""
        removed = self._store.delete_older_than(oldest_allowed(self._ttl_s))
        if removed:
            log.debug("history_cleaned", key=self._collection_key, removed=removed)
        return removed

    # ---------- cleaner lifecycle ----------

    def set_clean_interval(self, interval: Duration) -> None:
        """
        Replace the background cleaner. The old one is stopped (and joined)
        before the new one starts; a non-positive interval leaves none running.
        """
        secs = to_seconds(interval)
        with self._interval_lock:
            if self._interval is not None:
                self._interval.stop()
                self._interval = None
            if secs <= 0:
                log.debug("cleaner_disabled", key=self._collection_key)
                return
            self._interval = every(self._clean_tick, secs, name=f"clean:{self._collection_key}")

    @property
    def cleaner_running(self) -> bool:
        it = self._interval
        return it is not None and it.running

    def close(self) -> None:
        with self._interval_lock:
            if self._interval is not None:
                self._interval.stop()
                self._interval = None

    def __enter__(self) -> "HistoryTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _clean_tick(self) -> bool:
        self.clean()
        return True
