"""Failed login lockout: policy, ledger and record stores.

Components:
- LockoutPolicy: threshold, lock duration, failure window
- LockoutLedger: per-attempt decisions across identity keys
- LockoutStore: memory, database (SQL upsert) and Redis (Lua) backends
"""

from loginguard.core.config import Settings
from loginguard.lockout.ledger import LockoutLedger
from loginguard.lockout.memory import InMemoryLockoutStore
from loginguard.lockout.policy import (
    Allowed,
    AttemptsRemaining,
    Locked,
    LockoutPolicy,
    LockoutState,
    Unlocked,
)
from loginguard.lockout.store import LockoutStore, LockoutStoreError


def build_store(settings: Settings) -> LockoutStore:
    """Create the configured lockout store.

    The database and redis backends require init_db() / init_redis() first.
    """
    backend = settings.lockout.backend
    if backend == "memory":
        return InMemoryLockoutStore()
    if backend == "database":
        from loginguard.db.session import get_session_factory
        from loginguard.lockout.sql import SqlLockoutStore

        return SqlLockoutStore(get_session_factory())
    if backend == "redis":
        from loginguard.core.redis import get_redis
        from loginguard.lockout.redis_store import RedisLockoutStore

        return RedisLockoutStore(
            get_redis(),
            key_prefix=settings.redis.key_prefix,
            retention=settings.lockout.record_retention_delta(),
        )
    raise ValueError(f"Unsupported lockout backend: {backend}")


def build_ledger(settings: Settings) -> LockoutLedger:
    return LockoutLedger(build_store(settings), LockoutPolicy.from_config(settings.lockout))


__all__ = [
    "Allowed",
    "AttemptsRemaining",
    "InMemoryLockoutStore",
    "Locked",
    "LockoutLedger",
    "LockoutPolicy",
    "LockoutState",
    "LockoutStore",
    "LockoutStoreError",
    "Unlocked",
    "build_ledger",
    "build_store",
]
