"""Login form state.

Shows exactly one of: success, lock countdown, attempts-remaining message,
or a generic failure. While locked the error message is suppressed and the
form is disabled; it is re-enabled and the error cleared when the countdown
reaches zero.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from loginguard.client.api import (
    GENERIC_FAILURE,
    AuthClient,
    AuthClientError,
    LoginLocked,
    LoginOutcome,
    LoginRejected,
    LoginSucceeded,
)
from loginguard.client.countdown import LockCountdown
from loginguard.db.models import utc_now
from loginguard.schemas import UserProfile


class BannerKind(StrEnum):
    SUCCESS = "success"
    LOCKED = "locked"
    ATTEMPTS_REMAINING = "attempts_remaining"
    ERROR = "error"


@dataclass(frozen=True)
class Banner:
    kind: BannerKind
    text: str


def format_countdown(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


class LoginView:
    """State behind one mounted login form."""

    def __init__(
        self,
        on_change: Callable[["LoginView"], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        interval: float = 1.0,
    ) -> None:
        self._on_change = on_change
        self.countdown = LockCountdown(
            on_tick=self._on_tick,
            on_unlock=self._on_unlock,
            clock=clock,
            sleep=sleep,
            interval=interval,
        )
        self.email: str | None = None
        self.user: UserProfile | None = None
        self.error: str | None = None
        self.remaining_attempts: int | None = None
        self.submitting = False

    @property
    def locked(self) -> bool:
        return self.countdown.is_locked

    @property
    def form_enabled(self) -> bool:
        return not self.locked and not self.submitting

    @property
    def banner(self) -> Banner | None:
        if self.user is not None:
            return Banner(BannerKind.SUCCESS, f"Welcome, {self.user.name or self.user.email}")
        if self.locked:
            remaining = self.countdown.remaining or 0
            return Banner(
                BannerKind.LOCKED,
                f"Too many failed attempts. Try again in {format_countdown(remaining)}",
            )
        if self.error is None:
            return None
        if self.remaining_attempts:
            return Banner(BannerKind.ATTEMPTS_REMAINING, self.error)
        return Banner(BannerKind.ERROR, self.error)

    async def mount(self, client: AuthClient, email: str | None = None) -> None:
        """On-load check so a returning user sees a running countdown.

        Asks about the address and the remembered email, since a lock on
        either one rejects the next login.
        """
        if email:
            self.email = email
        status = await client.check_lock(self.email)
        if status is not None and status.locked and status.lock_until is not None:
            self._enter_lock(status.lock_until)

    async def submit(self, client: AuthClient, email: str, password: str) -> LoginOutcome | None:
        """Submit the form. Ignored while the form is disabled."""
        if not self.form_enabled:
            return None
        self.email = email
        self.submitting = True
        self._changed()
        try:
            outcome: LoginOutcome = await client.login(email, password)
        except AuthClientError:
            outcome = LoginRejected(GENERIC_FAILURE)
        finally:
            self.submitting = False
        self.apply(outcome)
        return outcome

    def apply(self, outcome: LoginOutcome) -> None:
        if isinstance(outcome, LoginLocked):
            self._enter_lock(outcome.lock_until)
            return
        if isinstance(outcome, LoginSucceeded):
            self.user = outcome.user
            self.error = None
            self.remaining_attempts = None
        elif not self.locked:
            self.error = outcome.message
            self.remaining_attempts = outcome.remaining_attempts
        self._changed()

    def close(self) -> None:
        """Unmount: stop the timer and drop back to idle without firing the unlock callback."""
        self.countdown.cancel()

    def _enter_lock(self, lock_until: datetime) -> None:
        self.error = None
        self.remaining_attempts = None
        self.countdown.lock(lock_until)

    def _on_tick(self, _remaining: int) -> None:
        self._changed()

    def _on_unlock(self) -> None:
        self.error = None
        self.remaining_attempts = None
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
