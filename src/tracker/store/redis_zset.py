# Redis sorted set as a time-indexed set:
#   ZADD {key} {expires_at} {member}
# so expiry sweeps are a single ZREMRANGEBYSCORE instead of a scan.
from __future__ import annotations

from typing import Optional

import structlog
from redis import Redis
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from tracker.errors import BackendUnavailableError

log = structlog.get_logger("redis_zset")

# connection drops surface as OSError subclasses before redis-py wraps them
BACKEND_ERRORS = (RedisError, OSError)

def exclusive_max(threshold: float) -> str:
    """ZRANGEBYSCORE bound that excludes `threshold` itself."""
    return f"({threshold!r}"

def _failed(op: str, key: str, err: Exception, strict: bool) -> None:
    log.warning("redis_op_failed", op=op, key=key, err=str(err))
    if strict:
        raise BackendUnavailableError(op, key, err) from err


class RedisZSetStore:
    """
    Best-effort adapter over a sync redis client. Failures are logged and read
    as "no effect" (None / 0) unless strict=True, in which case they raise
    BackendUnavailableError. Timeouts and pooling belong to the client.
    """
    def __init__(self, redis: Redis, key: str, *, strict: bool = False):
        self.redis = redis
        self.key = key
        self.strict = strict

    def put(self, member: str, score: float) -> None:
        try:
            self.redis.zadd(self.key, {member: score})
        except BACKEND_ERRORS as e:
            _failed("zadd", self.key, e, self.strict)

    def score(self, member: str) -> Optional[float]:
        try:
            s = self.redis.zscore(self.key, member)
        except BACKEND_ERRORS as e:
            _failed("zscore", self.key, e, self.strict)
            return None
        return None if s is None else float(s)

    def delete(self, member: str) -> None:
        try:
            self.redis.zrem(self.key, member)
        except BACKEND_ERRORS as e:
            _failed("zrem", self.key, e, self.strict)

    def delete_older_than(self, threshold: float) -> int:
        try:
            return int(self.redis.zremrangebyscore(self.key, "-inf", exclusive_max(threshold)))
        except BACKEND_ERRORS as e:
            _failed("zremrangebyscore", self.key, e, self.strict)
            return 0


class AsyncRedisZSetStore:
    """Same as RedisZSetStore over redis.asyncio."""

    def __init__(self, redis: AsyncRedis, key: str, *, strict: bool = False):
        self.redis = redis
        self.key = key
        self.strict = strict

    async def put(self, member: str, score: float) -> None:
        try:
            await self.redis.zadd(self.key, {member: score})
        except BACKEND_ERRORS as e:
            _failed("zadd", self.key, e, self.strict)

    async def score(self, member: str) -> Optional[float]:
        try:
            s = await self.redis.zscore(self.key, member)
        except BACKEND_ERRORS as e:
            _failed("zscore", self.key, e, self.strict)
            return None
        return None if s is None else float(s)

    async def delete(self, member: str) -> None:
        try:
            await self.redis.zrem(self.key, member)
        except BACKEND_ERRORS as e:
            _failed("zrem", self.key, e, self.strict)

    async def delete_older_than(self, threshold: float) -> int:
        try:
            return int(await self.redis.zremrangebyscore(self.key, "-inf", exclusive_max(threshold)))
        except BACKEND_ERRORS as e:
            _failed("zremrangebyscore", self.key, e, self.strict)
            return 0
