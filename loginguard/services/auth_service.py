"""Login service.

Orchestrates one login attempt:
1. Ask the lockout ledger whether the identity keys may attempt at all
2. Verify credentials against the user store
3. Count the failure (possibly issuing a lock) or clear the ledger on success
4. Write the audit row and issue the access token

The ledger is consulted before any password comparison, so a locked
request never reaches credential verification.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.core.config import Settings
from loginguard.core.errors import (
    AccountLockedError,
    ForbiddenError,
    InvalidCredentialsError,
    LockoutUnavailableError,
)
from loginguard.core.logging import LogEvent
from loginguard.core.security import (
    burn_password_check,
    create_access_token,
    verify_password,
)
from loginguard.db.models import AuthProvider, FailureReason, User
from loginguard.lockout.keys import identity_keys, normalize_email
from loginguard.lockout.ledger import LockoutLedger
from loginguard.lockout.policy import Locked, Unlocked, format_wait
from loginguard.lockout.store import LockoutStoreError
from loginguard.services.attempt_log import LoginAttemptLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: User
    token: str


class AuthService:
    """Service for password login guarded by the lockout ledger."""

    def __init__(self, ledger: LockoutLedger, settings: Settings) -> None:
        self.ledger = ledger
        self.settings = settings

    def _unavailable(self, exc: LockoutStoreError, **fields: str) -> LockoutUnavailableError:
        logger.error(
            "Lockout store unavailable: %s",
            exc,
            extra={"event": LogEvent.LOCKOUT_STORE_ERROR, **fields},
        )
        return LockoutUnavailableError()

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        client_ip: str,
        user_agent: str | None = None,
    ) -> LoginResult:
        """Authenticate one login attempt.

        Raises:
            AccountLockedError: Locked before the check, or locked by this failure
            InvalidCredentialsError: Wrong credentials, attempts remaining
            ForbiddenError: Correct password on a disabled account
            LockoutUnavailableError: Ledger could not be read or written
        """
        email = normalize_email(email)
        keys = identity_keys(email, client_ip, self.settings.lockout.key_mode)

        try:
            decision = await self.ledger.check_and_record_attempt(keys)
        except LockoutStoreError as e:
            raise self._unavailable(e, email=email, ip=client_ip) from e

        if isinstance(decision, Locked):
            logger.warning(
                "Login blocked by active lock",
                extra={
                    "event": LogEvent.LOGIN_BLOCKED,
                    "email": email,
                    "ip": client_ip,
                    "remaining_seconds": decision.remaining_seconds,
                },
            )
            await LoginAttemptLog.record(
                db,
                email=email,
                ip_address=client_ip,
                user_agent=user_agent,
                success=False,
                failure_reason=FailureReason.LOCKED,
                lock_until=decision.locked_until,
                now=self.ledger.now(),
            )
            raise AccountLockedError(
                lock_until=decision.locked_until,
                remaining_time=decision.remaining_seconds,
                message=(
                    "Too many failed login attempts. "
                    f"Please try again in {format_wait(decision.remaining_seconds)}."
                ),
            )

        result = await db.execute(
            select(User).where(User.email == email)  # type: ignore[arg-type]
        )
        user = result.scalar_one_or_none()

        if user is None:
            burn_password_check(password)
            raise await self._fail(
                db, keys, email, client_ip, user_agent, FailureReason.USER_NOT_FOUND
            )
        if user.auth_provider != AuthProvider.EMAIL_PASSWORD or not user.password_hash:
            burn_password_check(password)
            raise await self._fail(
                db, keys, email, client_ip, user_agent, FailureReason.PROVIDER_MISMATCH
            )
        if not verify_password(password, user.password_hash):
            raise await self._fail(
                db, keys, email, client_ip, user_agent, FailureReason.INVALID_CREDENTIALS
            )

        if not user.is_active:
            await LoginAttemptLog.record(
                db,
                email=email,
                ip_address=client_ip,
                user_agent=user_agent,
                success=False,
                failure_reason=FailureReason.ACCOUNT_INACTIVE,
                now=self.ledger.now(),
            )
            raise ForbiddenError("Account is disabled")

        try:
            await self.ledger.record_success(keys)
        except LockoutStoreError as e:
            raise self._unavailable(e, email=email, ip=client_ip) from e

        now = self.ledger.now()
        user.last_login_at = now
        db.add(user)
        await db.commit()
        await db.refresh(user)

        await LoginAttemptLog.record(
            db,
            email=email,
            ip_address=client_ip,
            user_agent=user_agent,
            success=True,
            now=now,
        )

        auth = self.settings.auth
        token = create_access_token(
            subject=user.id,
            claims={
                "email": user.email,
                "role": user.role.value,
                "authProvider": user.auth_provider.value,
            },
            secret=auth.jwt_secret,
            ttl=auth.token_ttl_delta(),
            algorithm=auth.jwt_algorithm,
            now=now,
        )

        logger.info(
            "Login succeeded",
            extra={"event": LogEvent.LOGIN_SUCCEEDED, "user_id": user.id, "ip": client_ip},
        )
        return LoginResult(user=user, token=token)

    async def _fail(
        self,
        db: AsyncSession,
        keys: list[str],
        email: str,
        client_ip: str,
        user_agent: str | None,
        reason: FailureReason,
    ) -> AccountLockedError | InvalidCredentialsError:
        """Count a failed credential check and return the error to raise.

        Raises:
            LockoutUnavailableError: The failure could not be recorded
        """
        try:
            status = await self.ledger.record_failure(keys)
        except LockoutStoreError as e:
            raise self._unavailable(e, email=email, ip=client_ip) from e

        policy = self.ledger.policy
        if isinstance(status, Locked):
            attempt_number = policy.threshold
            lock_until = status.locked_until
        else:
            attempt_number = policy.threshold - status.remaining
            lock_until = None

        logger.warning(
            "Login failed",
            extra={
                "event": LogEvent.LOGIN_FAILED,
                "email": email,
                "ip": client_ip,
                "reason": reason.value,
                "attempt_number": attempt_number,
            },
        )
        await LoginAttemptLog.record(
            db,
            email=email,
            ip_address=client_ip,
            user_agent=user_agent,
            success=False,
            failure_reason=reason,
            attempt_number=attempt_number,
            lock_until=lock_until,
            now=self.ledger.now(),
        )

        if isinstance(status, Locked):
            if status.triggered:
                duration = int(policy.lockout_duration.total_seconds())
                message = (
                    "Too many failed login attempts. "
                    f"Your account has been locked for {format_wait(duration)}."
                )
            else:
                message = (
                    "Too many failed login attempts. "
                    f"Please try again in {format_wait(status.remaining_seconds)}."
                )
            return AccountLockedError(
                lock_until=status.locked_until,
                remaining_time=status.remaining_seconds,
                message=message,
            )
        return InvalidCredentialsError(remaining_attempts=status.remaining)

    async def lock_status(self, client_ip: str, email: str | None = None) -> Locked | Unlocked:
        """Lock status for the caller's address and, when given, the email.

        Uses the same keys a login attempt would, so a lock on either key
        is reported.
        """
        email = normalize_email(email) if email else None
        try:
            keys = identity_keys(email, client_ip, self.settings.lockout.key_mode)
        except ValueError:
            return Unlocked()
        try:
            return await self.ledger.get_lock_status(keys)
        except LockoutStoreError as e:
            raise self._unavailable(e, ip=client_ip) from e
