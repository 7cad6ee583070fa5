"""In-process lockout store.

Suitable for a single worker. Every mutation happens under one
``asyncio.Lock`` so read-modify-write of a record is atomic within the
event loop.
"""

import asyncio
from datetime import datetime
from typing import Literal

from loginguard.lockout.policy import LockoutPolicy, LockoutState
from loginguard.lockout.store import LockoutStore


class InMemoryLockoutStore(LockoutStore):
    """Dictionary-backed lockout records."""

    def __init__(self) -> None:
        self._records: dict[str, LockoutState] = {}
        self._lock = asyncio.Lock()

    @property
    def backend_name(self) -> Literal["memory"]:
        return "memory"

    async def get(self, key: str) -> LockoutState | None:
        return self._records.get(key)

    async def register_failure(
        self, key: str, now: datetime, policy: LockoutPolicy
    ) -> LockoutState:
        async with self._lock:
            state = policy.next_state(self._records.get(key), key, now)
            self._records[key] = state
            return state

    async def release_expired(self, key: str, now: datetime) -> bool:
        async with self._lock:
            state = self._records.get(key)
            if state is None or state.locked_until is None or state.locked_until > now:
                return False
            self._records[key] = LockoutState(
                key=key, failed_attempts=0, last_attempt_at=state.last_attempt_at
            )
            return True

    async def clear(self, key: str) -> None:
        async with self._lock:
            state = self._records.get(key)
            if state is not None:
                self._records[key] = LockoutState(
                    key=key, failed_attempts=0, last_attempt_at=state.last_attempt_at
                )

    async def prune(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [
                key
                for key, state in self._records.items()
                if (state.locked_until is None or state.locked_until <= cutoff)
                and (state.last_attempt_at is None or state.last_attempt_at < cutoff)
            ]
            for key in stale:
                del self._records[key]
            return len(stale)
