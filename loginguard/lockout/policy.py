"""Lockout policy and decision types.

A key is locked if and only if ``locked_until`` is set and strictly later
than the current time. Once the deadline passes the key is treated as
unlocked without any background sweep (lazy expiry), and the next failure
starts the count over.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loginguard.core.config import LockoutConfig


@dataclass(frozen=True)
class LockoutState:
    """Snapshot of one lockout record."""

    key: str
    failed_attempts: int = 0
    locked_until: datetime | None = None
    last_attempt_at: datetime | None = None


@dataclass(frozen=True)
class Allowed:
    """Proceed to credential verification."""


@dataclass(frozen=True)
class Unlocked:
    """No active lock for the queried keys."""


@dataclass(frozen=True)
class Locked:
    """Reject without checking credentials.

    ``triggered`` is set when the failure being recorded is the one that
    issued the lock.
    """

    locked_until: datetime
    remaining_seconds: int
    triggered: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class AttemptsRemaining:
    """Failure recorded; ``remaining`` more failures trigger a lock."""

    remaining: int


Decision = Allowed | Locked
LockStatus = Locked | AttemptsRemaining


def remaining_seconds(locked_until: datetime, now: datetime) -> int:
    """Whole seconds until ``locked_until``, rounded up, never negative."""
    return max(0, math.ceil((locked_until - now).total_seconds()))


def format_wait(seconds: int) -> str:
    """Render a wait as 'N minute(s) and M second(s)'."""
    minutes, secs = divmod(max(0, seconds), 60)
    parts = []
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    if secs or not minutes:
        parts.append(f"{secs} second{'s' if secs != 1 else ''}")
    return " and ".join(parts)


@dataclass(frozen=True)
class LockoutPolicy:
    """Threshold and timing parameters for the ledger."""

    threshold: int = 3
    lockout_duration: timedelta = timedelta(minutes=5)
    failure_window: timedelta | None = timedelta(minutes=5)

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError("threshold must be at least 1")
        if self.lockout_duration <= timedelta(0):
            raise ValueError("lockout_duration must be positive")

    @classmethod
    def from_config(cls, config: LockoutConfig) -> "LockoutPolicy":
        return cls(
            threshold=config.threshold,
            lockout_duration=config.duration_delta(),
            failure_window=config.failure_window_delta(),
        )

    def is_locked(self, state: LockoutState | None, now: datetime) -> bool:
        return (
            state is not None
            and state.locked_until is not None
            and state.locked_until > now
        )

    def evaluate(self, state: LockoutState | None, now: datetime) -> Locked | None:
        """Return the active lock for ``state``, if any."""
        if state is None or state.locked_until is None or state.locked_until <= now:
            return None
        return Locked(state.locked_until, remaining_seconds(state.locked_until, now))

    def status_after_failure(self, state: LockoutState, now: datetime) -> LockStatus:
        """Classify a record returned by ``register_failure``."""
        lock = self.evaluate(state, now)
        if lock is not None:
            # Stores may round timestamps (Redis keeps milliseconds).
            issued_now = abs(lock.locked_until - (now + self.lockout_duration)) < timedelta(seconds=1)
            return Locked(lock.locked_until, lock.remaining_seconds, triggered=issued_now)
        return AttemptsRemaining(max(0, self.threshold - state.failed_attempts))

    def is_stale(self, state: LockoutState, now: datetime) -> bool:
        """True when the last attempt fell out of the failure window."""
        if self.failure_window is None or state.last_attempt_at is None:
            return False
        return state.last_attempt_at <= now - self.failure_window

    def next_state(self, state: LockoutState | None, key: str, now: datetime) -> LockoutState:
        """Apply one failed attempt to ``state``.

        Stores that can run this in-process under a lock use it directly;
        the SQL and Redis stores encode the same rules server-side.
        """
        if state is None:
            state = LockoutState(key=key)
        if self.is_locked(state, now):
            return state

        failed = state.failed_attempts
        lock_expired = state.locked_until is not None and state.locked_until <= now
        if lock_expired or self.is_stale(state, now):
            failed = 0
        failed += 1

        locked_until = now + self.lockout_duration if failed >= self.threshold else None
        return LockoutState(
            key=key,
            failed_attempts=failed,
            locked_until=locked_until,
            last_attempt_at=now,
        )
