"""Lock countdown state machine.

Two states, IDLE and LOCKED, and one owned timer task. The deadline always
comes from the server; the countdown only renders it:

    IDLE --lock(deadline)--> LOCKED --remaining reaches 0--> IDLE

Setting a new lock cancels the running timer first, so at most one timer
ticks per countdown.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import StrEnum

from loginguard.db.models import utc_now

logger = logging.getLogger(__name__)


class LockState(StrEnum):
    IDLE = "idle"
    LOCKED = "locked"


def floor_remaining(lock_until: datetime, now: datetime) -> int:
    """Whole seconds left, rounded down, never negative."""
    return max(0, math.floor((lock_until - now).total_seconds()))


def _log_timer_failure(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Countdown timer failed: %s", exc, exc_info=exc)


class LockCountdown:
    """Renders a live countdown to a lock deadline.

    Rendered values strictly decrease and end with exactly one 0, after
    which ``on_unlock`` fires and the state returns to IDLE.
    """

    def __init__(
        self,
        on_tick: Callable[[int], None],
        on_unlock: Callable[[], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        interval: float = 1.0,
    ) -> None:
        self._on_tick = on_tick
        self._on_unlock = on_unlock
        self._clock = clock
        self._sleep = sleep
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._last_rendered: int | None = None
        self.state = LockState.IDLE
        self.lock_until: datetime | None = None

    @property
    def is_locked(self) -> bool:
        return self.state is LockState.LOCKED

    @property
    def remaining(self) -> int | None:
        """Last rendered value while locked."""
        return self._last_rendered if self.is_locked else None

    def lock(self, lock_until: datetime) -> None:
        """Enter LOCKED and start ticking. Must be called from a running loop."""
        self._stop_timer()
        self.state = LockState.LOCKED
        self.lock_until = lock_until
        self._last_rendered = None
        if self._render():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(_log_timer_failure)

    def cancel(self) -> None:
        """Tear down without firing ``on_unlock``."""
        self._stop_timer()
        self.state = LockState.IDLE
        self.lock_until = None
        self._last_rendered = None

    async def wait_unlocked(self) -> None:
        """Wait until the running timer finishes or is cancelled."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    def _stop_timer(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await self._sleep(self._interval)
            if self._render():
                return

    def _render(self) -> bool:
        """Emit the current value if it moved down. True once 0 was emitted."""
        if self.lock_until is None:
            return True
        remaining = floor_remaining(self.lock_until, self._clock())
        if self._last_rendered is not None and remaining >= self._last_rendered:
            return False
        self._last_rendered = remaining
        self._on_tick(remaining)
        if remaining == 0:
            self._finish()
            return True
        return False

    def _finish(self) -> None:
        self._task = None
        self.state = LockState.IDLE
        self.lock_until = None
        self._last_rendered = None
        if self._on_unlock is not None:
            self._on_unlock()
