"""Login attempt audit log.

Every login attempt, successful or not, is written to ``login_attempts``.
Rows are kept for ``lockout.attempt_retention`` (30 days by default) and
removed by ``prune``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from loginguard.core.logging import LogEvent
from loginguard.db.models import FailureReason, LoginAttempt, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptStatistics:
    """Aggregate counts over a time window."""

    total: int
    successful: int
    failed: int
    unique_ips: int


class LoginAttemptLog:
    """Service for the login attempt audit trail."""

    @staticmethod
    async def record(
        db: AsyncSession,
        *,
        email: str,
        ip_address: str,
        user_agent: str | None = None,
        success: bool,
        failure_reason: FailureReason | None = None,
        attempt_number: int = 0,
        lock_until: datetime | None = None,
        now: datetime | None = None,
    ) -> LoginAttempt | None:
        """Write one audit row.

        Audit failures are logged and swallowed: the login outcome has
        already been decided by the ledger.

        Returns:
            The stored row, or None if the write failed
        """
        attempt = LoginAttempt(
            email=email,
            ip_address=ip_address,
            user_agent=user_agent or "unknown",
            success=success,
            failure_reason=failure_reason,
            attempt_number=attempt_number,
            lock_until=lock_until,
            created_at=now or utc_now(),
        )
        db.add(attempt)
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "Failed to write login attempt",
                extra={"event": LogEvent.ATTEMPT_LOG_ERROR, "email": email},
            )
            return None
        return attempt

    @staticmethod
    async def recent(
        db: AsyncSession, limit: int = 20, email: str | None = None
    ) -> list[LoginAttempt]:
        """Most recent attempts first, optionally for one email."""
        stmt = select(LoginAttempt)
        if email is not None:
            stmt = stmt.where(col(LoginAttempt.email) == email)
        stmt = stmt.order_by(col(LoginAttempt.created_at).desc()).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def statistics(
        db: AsyncSession,
        email: str | None = None,
        days: int = 7,
        now: datetime | None = None,
    ) -> AttemptStatistics:
        """Count attempts over the last ``days`` days."""
        since = (now or utc_now()) - timedelta(days=days)
        stmt = select(
            func.count(),
            func.count().filter(col(LoginAttempt.success).is_(True)),
            func.count(func.distinct(col(LoginAttempt.ip_address))),
        ).where(col(LoginAttempt.created_at) >= since)
        if email is not None:
            stmt = stmt.where(col(LoginAttempt.email) == email)

        total, successful, unique_ips = (await db.execute(stmt)).one()
        return AttemptStatistics(
            total=total,
            successful=successful,
            failed=total - successful,
            unique_ips=unique_ips,
        )

    @staticmethod
    async def prune(db: AsyncSession, cutoff: datetime) -> int:
        """Delete attempts created before ``cutoff``."""
        result = await db.execute(
            delete(LoginAttempt).where(col(LoginAttempt.created_at) < cutoff)
        )
        await db.commit()
        return result.rowcount or 0  # type: ignore[attr-defined]
