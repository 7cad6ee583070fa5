"""Lockout ledger: the per-attempt decision point for login.

Keys compose with an OR rule: a request is locked if any of its identity
keys is locked, and the reported deadline is the latest among them.
Remaining attempts is the minimum across keys. Store failures propagate
as ``LockoutStoreError`` so callers can refuse the login.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from loginguard.core.logging import LogEvent
from loginguard.db.models import utc_now
from loginguard.lockout.policy import (
    Allowed,
    AttemptsRemaining,
    Decision,
    Locked,
    LockoutPolicy,
    LockStatus,
    Unlocked,
)
from loginguard.lockout.store import LockoutStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _latest(locks: Sequence[Locked]) -> Locked:
    return max(locks, key=lambda lock: lock.locked_until)


class LockoutLedger:
    """Tracks failed attempts per identity key and issues locks."""

    def __init__(
        self,
        store: LockoutStore,
        policy: LockoutPolicy,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.policy = policy
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    async def check_and_record_attempt(self, keys: Sequence[str]) -> Decision:
        """Decide whether credential verification may proceed.

        Expired locks found along the way are released so the next failure
        starts from zero.
        """
        now = self.now()
        locks: list[Locked] = []
        for key in keys:
            state = await self.store.get(key)
            if state is None:
                continue
            lock = self.policy.evaluate(state, now)
            if lock is not None:
                locks.append(lock)
            elif state.locked_until is not None:
                if await self.store.release_expired(key, now):
                    logger.info(
                        "Lock expired",
                        extra={"event": LogEvent.LOCKOUT_RELEASED, "key": key},
                    )

        if locks:
            return _latest(locks)
        return Allowed()

    async def record_failure(self, keys: Sequence[str]) -> LockStatus:
        """Count a failed credential check against every key."""
        now = self.now()
        locks: list[Locked] = []
        remaining: list[int] = []
        for key in keys:
            state = await self.store.register_failure(key, now, self.policy)
            status = self.policy.status_after_failure(state, now)
            if isinstance(status, Locked):
                locks.append(status)
                if status.triggered:
                    logger.warning(
                        "Lockout triggered",
                        extra={
                            "event": LogEvent.LOCKOUT_TRIGGERED,
                            "key": key,
                            "failed_attempts": state.failed_attempts,
                            "locked_until": status.locked_until.isoformat(),
                        },
                    )
            else:
                remaining.append(status.remaining)

        if locks:
            return _latest(locks)
        return AttemptsRemaining(min(remaining))

    async def record_success(self, keys: Sequence[str]) -> None:
        """Reset failures and locks for every key."""
        for key in keys:
            await self.store.clear(key)

    async def get_lock_status(self, keys: Sequence[str]) -> Locked | Unlocked:
        """Read-only lock check for the 'am I locked' endpoint."""
        now = self.now()
        locks: list[Locked] = []
        for key in keys:
            lock = self.policy.evaluate(await self.store.get(key), now)
            if lock is not None:
                locks.append(lock)
        if locks:
            return _latest(locks)
        return Unlocked()

    async def unlock(self, key: str) -> bool:
        """Administrative unlock. Returns True if the key was locked."""
        now = self.now()
        was_locked = self.policy.is_locked(await self.store.get(key), now)
        await self.store.clear(key)
        logger.info(
            "Lockout cleared",
            extra={"event": LogEvent.LOCKOUT_CLEARED, "key": key, "was_locked": was_locked},
        )
        return was_locked
