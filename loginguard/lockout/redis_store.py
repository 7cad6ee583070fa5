"""Redis-backed lockout store for multi-worker deployments.

One hash per identity key:
    {prefix}:{key} -> failed_attempts, locked_until (ms), last_attempt_at (ms)

Failure registration runs as a Lua script so the read-modify-write happens
atomically on the server. Keys expire after the record retention period.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Literal

import redis.asyncio as redis
from redis.exceptions import RedisError

from loginguard.lockout.policy import LockoutPolicy, LockoutState
from loginguard.lockout.store import LockoutStore, LockoutStoreError

logger = logging.getLogger(__name__)

# KEYS[1] record key
# ARGV: now_ms, threshold, duration_ms, window_ms (0 = off), ttl_seconds
_REGISTER_FAILURE_LUA = """
local now = tonumber(ARGV[1])
local threshold = tonumber(ARGV[2])
local duration = tonumber(ARGV[3])
local window = tonumber(ARGV[4])
local ttl = tonumber(ARGV[5])

local state = redis.call('HMGET', KEYS[1], 'failed_attempts', 'locked_until', 'last_attempt_at')
local failed = tonumber(state[1]) or 0
local locked_until = tonumber(state[2])
local last = tonumber(state[3])

if locked_until and locked_until > now then
    return {failed, locked_until, last or -1}
end

if (locked_until and locked_until <= now) or (window > 0 and last and last <= now - window) then
    failed = 0
end
failed = failed + 1

redis.call('HSET', KEYS[1], 'failed_attempts', failed, 'last_attempt_at', now)
local new_lock = -1
if failed >= threshold then
    new_lock = now + duration
    redis.call('HSET', KEYS[1], 'locked_until', new_lock)
else
    redis.call('HDEL', KEYS[1], 'locked_until')
end
redis.call('EXPIRE', KEYS[1], math.max(ttl, math.ceil(duration / 1000)))
return {failed, new_lock, now}
"""

# KEYS[1] record key; ARGV[1] now_ms
_RELEASE_EXPIRED_LUA = """
local locked_until = tonumber(redis.call('HGET', KEYS[1], 'locked_until'))
if locked_until and locked_until <= tonumber(ARGV[1]) then
    redis.call('HSET', KEYS[1], 'failed_attempts', 0)
    redis.call('HDEL', KEYS[1], 'locked_until')
    return 1
end
return 0
"""

# KEYS[1] record key; ARGV[1] ttl_seconds
_CLEAR_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
redis.call('HSET', KEYS[1], 'failed_attempts', 0)
redis.call('HDEL', KEYS[1], 'locked_until')
redis.call('EXPIRE', KEYS[1], ARGV[1])
return 1
"""


def _to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_ms(value: int | str | None) -> datetime | None:
    if value is None:
        return None
    ms = int(value)
    if ms < 0:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=UTC)


class RedisLockoutStore(LockoutStore):
    """Lockout records kept in Redis hashes."""

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "loginguard:lockout",
        retention: timedelta = timedelta(days=1),
    ) -> None:
        self._client = client
        self._prefix = key_prefix
        self._ttl_seconds = max(1, int(retention.total_seconds()))
        self._register_failure = client.register_script(_REGISTER_FAILURE_LUA)
        self._release_expired = client.register_script(_RELEASE_EXPIRED_LUA)
        self._clear = client.register_script(_CLEAR_LUA)

    @property
    def backend_name(self) -> Literal["redis"]:
        return "redis"

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> LockoutState | None:
        try:
            data = await self._client.hgetall(self._redis_key(key))  # type: ignore[misc]
        except RedisError as e:
            raise LockoutStoreError(f"Failed to read lockout record: {e}") from e

        if not data:
            return None
        return LockoutState(
            key=key,
            failed_attempts=int(data.get("failed_attempts", 0)),
            locked_until=_from_ms(data.get("locked_until")),
            last_attempt_at=_from_ms(data.get("last_attempt_at")),
        )

    async def register_failure(
        self, key: str, now: datetime, policy: LockoutPolicy
    ) -> LockoutState:
        window_ms = (
            int(policy.failure_window.total_seconds() * 1000)
            if policy.failure_window is not None
            else 0
        )
        try:
            failed, locked_until, last = await self._register_failure(
                keys=[self._redis_key(key)],
                args=[
                    _to_ms(now),
                    policy.threshold,
                    int(policy.lockout_duration.total_seconds() * 1000),
                    window_ms,
                    self._ttl_seconds,
                ],
            )
        except RedisError as e:
            raise LockoutStoreError(f"Failed to record login failure: {e}") from e

        return LockoutState(
            key=key,
            failed_attempts=int(failed),
            locked_until=_from_ms(locked_until),
            last_attempt_at=_from_ms(last),
        )

    async def release_expired(self, key: str, now: datetime) -> bool:
        try:
            released = await self._release_expired(
                keys=[self._redis_key(key)], args=[_to_ms(now)]
            )
        except RedisError as e:
            raise LockoutStoreError(f"Failed to release expired lock: {e}") from e
        return bool(released)

    async def clear(self, key: str) -> None:
        """Reset an existing record; keys that never failed stay absent."""
        try:
            await self._clear(keys=[self._redis_key(key)], args=[self._ttl_seconds])
        except RedisError as e:
            raise LockoutStoreError(f"Failed to clear lockout record: {e}") from e

    async def prune(self, cutoff: datetime) -> int:
        """Redis expires idle records on its own; nothing to delete."""
        return 0
