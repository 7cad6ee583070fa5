"""Lockout store interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Literal

from loginguard.lockout.policy import LockoutPolicy, LockoutState


class LockoutStoreError(Exception):
    """The backing store could not be read or written."""


class LockoutStore(ABC):
    """Abstract base class for lockout record backends.

    ``register_failure`` must be a single atomic transition: two concurrent
    failures for the same key may never both observe the pre-increment count.
    """

    @property
    @abstractmethod
    def backend_name(self) -> Literal["memory", "database", "redis"]:
        """Return the backend identifier."""
        ...

    @abstractmethod
    async def get(self, key: str) -> LockoutState | None:
        """Return the record for ``key`` or None if never seen."""
        ...

    @abstractmethod
    async def register_failure(
        self, key: str, now: datetime, policy: LockoutPolicy
    ) -> LockoutState:
        """Count one failed attempt and return the resulting record.

        A failure while the key is locked leaves the record unchanged. An
        expired lock or a last attempt outside the failure window restarts
        the count at 1. Reaching the threshold sets
        ``locked_until = now + lockout_duration``.
        """
        ...

    @abstractmethod
    async def release_expired(self, key: str, now: datetime) -> bool:
        """Reset a record whose lock deadline is at or before ``now``.

        Returns True if a lock was released.
        """
        ...

    @abstractmethod
    async def clear(self, key: str) -> None:
        """Reset failures and lock for ``key``. Idempotent."""
        ...

    @abstractmethod
    async def prune(self, cutoff: datetime) -> int:
        """Delete unlocked records last touched before ``cutoff``."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None
