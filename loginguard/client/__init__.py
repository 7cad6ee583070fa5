"""Client side of loginguard: HTTP client, lock countdown and login form state."""

from loginguard.client.api import (
    AuthClient,
    AuthClientError,
    LoginLocked,
    LoginOutcome,
    LoginRejected,
    LoginSucceeded,
)
from loginguard.client.countdown import LockCountdown, LockState
from loginguard.client.view import Banner, BannerKind, LoginView

__all__ = [
    "AuthClient",
    "AuthClientError",
    "Banner",
    "BannerKind",
    "LockCountdown",
    "LockState",
    "LoginLocked",
    "LoginOutcome",
    "LoginRejected",
    "LoginSucceeded",
    "LoginView",
]
