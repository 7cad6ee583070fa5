"""HTTP client for the loginguard auth API.

``login`` maps every reply to one of three outcomes. A 429 is always a
lock, whatever else the body carries. ``check_lock`` is advisory: any
transport error or unexpected reply is treated as "no information".
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx
from pydantic import ValidationError

from loginguard.db.models import as_utc, utc_now
from loginguard.schemas import LockStatusResponse, LoginResponse, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_LOCK_SECONDS = 300
GENERIC_FAILURE = "Login failed. Please try again."


class AuthClientError(Exception):
    """The login request could not be completed."""


@dataclass(frozen=True)
class LoginSucceeded:
    user: UserProfile
    token: str


@dataclass(frozen=True)
class LoginRejected:
    message: str
    remaining_attempts: int | None = None


@dataclass(frozen=True)
class LoginLocked:
    lock_until: datetime
    remaining_time: int
    message: str


LoginOutcome = LoginSucceeded | LoginRejected | LoginLocked


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


class AuthClient:
    """Async client for login and lock status.

    Usage:
        async with AuthClient("http://localhost:8080") as client:
            outcome = await client.login("user@example.com", "secret")
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        clock=utc_now,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._clock = clock
        self.token: str | None = None

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _lock_until(self, body: dict[str, Any]) -> tuple[datetime, int]:
        """Read the deadline, deriving it from remainingTime when absent."""
        remaining = body.get("remainingTime")
        if not isinstance(remaining, int) or remaining < 0:
            remaining = DEFAULT_LOCK_SECONDS
        lock_until = _parse_timestamp(body.get("lockUntil"))
        if lock_until is None:
            lock_until = self._clock() + timedelta(seconds=remaining)
        return lock_until, remaining

    async def login(self, email: str, password: str) -> LoginOutcome:
        """Submit credentials.

        Raises:
            AuthClientError: If the server could not be reached
        """
        try:
            response = await self._http.post(
                "/api/v1/auth/login", json={"email": email, "password": password}
            )
        except httpx.HTTPError as e:
            raise AuthClientError(str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code == 429 or body.get("locked") is True:
            lock_until, remaining = self._lock_until(body)
            return LoginLocked(
                lock_until=lock_until,
                remaining_time=remaining,
                message=body.get("message") or "Too many failed login attempts",
            )

        if response.status_code == 200:
            try:
                result = LoginResponse.model_validate(body)
            except ValidationError as e:
                raise AuthClientError(f"Unexpected login response: {e}") from e
            self.token = result.token
            return LoginSucceeded(user=result.user, token=result.token)

        remaining_attempts = body.get("remainingAttempts")
        return LoginRejected(
            message=body.get("message") or GENERIC_FAILURE,
            remaining_attempts=remaining_attempts if isinstance(remaining_attempts, int) else None,
        )

    async def check_lock(self, email: str | None = None) -> LockStatusResponse | None:
        """Ask whether this address, or ``email`` when given, is locked.

        Returns None when unknown.
        """
        params = {"email": email} if email else None
        try:
            response = await self._http.get("/api/v1/auth/check-ip-lock", params=params)
        except httpx.HTTPError as e:
            logger.debug("Lock status check failed: %s", e)
            return None
        if response.status_code != 200:
            logger.debug("Lock status check returned %s", response.status_code)
            return None

        try:
            body = response.json()
            status = LockStatusResponse.model_validate(body)
        except (ValueError, ValidationError) as e:
            logger.debug("Lock status check returned malformed body: %s", e)
            return None

        if status.locked and status.lock_until is None:
            lock_until, remaining = self._lock_until(body)
            status = status.model_copy(update={"lock_until": lock_until, "remaining_time": remaining})
        elif status.lock_until is not None:
            status = status.model_copy(update={"lock_until": as_utc(status.lock_until)})
        return status

    async def me(self) -> UserProfile:
        """Fetch the profile for the stored token.

        Raises:
            AuthClientError: Not logged in, or the server rejected the token
        """
        if self.token is None:
            raise AuthClientError("Not logged in")
        try:
            response = await self._http.get(
                "/api/v1/auth/me", headers={"Authorization": f"Bearer {self.token}"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AuthClientError(str(e)) from e
        return UserProfile.model_validate(response.json())
