"""Tests for the login attempt audit log."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from loginguard.db import FailureReason
from loginguard.services.attempt_log import AttemptStatistics, LoginAttemptLog

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


async def _seed(db_session) -> None:
    rows = [
        ("a@example.com", "10.0.0.1", True, None, NOW - timedelta(hours=1)),
        ("a@example.com", "10.0.0.2", False, FailureReason.INVALID_CREDENTIALS, NOW - timedelta(hours=2)),
        ("a@example.com", "10.0.0.2", False, FailureReason.LOCKED, NOW - timedelta(days=3)),
        ("b@example.com", "10.0.0.3", False, FailureReason.USER_NOT_FOUND, NOW - timedelta(days=40)),
    ]
    for email, ip, success, reason, created_at in rows:
        await LoginAttemptLog.record(
            db_session,
            email=email,
            ip_address=ip,
            success=success,
            failure_reason=reason,
            now=created_at,
        )


class TestRecord:
    @pytest.mark.asyncio
    async def test_record_defaults(self, db_session):
        attempt = await LoginAttemptLog.record(
            db_session, email="a@example.com", ip_address="10.0.0.1", success=True, now=NOW
        )

        assert attempt is not None
        assert attempt.id
        assert attempt.user_agent == "unknown"
        assert attempt.failure_reason is None

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, db_session, monkeypatch, caplog):
        async def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(db_session, "commit", broken_commit)

        result = await LoginAttemptLog.record(
            db_session, email="a@example.com", ip_address="10.0.0.1", success=False, now=NOW
        )

        assert result is None
        assert any(
            getattr(record, "event", None) == "attempt_log_error" for record in caplog.records
        )


class TestQueries:
    @pytest.mark.asyncio
    async def test_recent_newest_first(self, db_session):
        await _seed(db_session)

        attempts = await LoginAttemptLog.recent(db_session, limit=2)

        assert [a.ip_address for a in attempts] == ["10.0.0.1", "10.0.0.2"]

    @pytest.mark.asyncio
    async def test_recent_for_email(self, db_session):
        await _seed(db_session)

        attempts = await LoginAttemptLog.recent(db_session, email="b@example.com")

        assert len(attempts) == 1
        assert attempts[0].failure_reason == FailureReason.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_statistics(self, db_session):
        await _seed(db_session)

        stats = await LoginAttemptLog.statistics(db_session, "a@example.com", days=7, now=NOW)

        assert stats == AttemptStatistics(total=3, successful=1, failed=2, unique_ips=2)

    @pytest.mark.asyncio
    async def test_statistics_window(self, db_session):
        await _seed(db_session)

        stats = await LoginAttemptLog.statistics(db_session, days=1, now=NOW)

        assert stats == AttemptStatistics(total=2, successful=1, failed=1, unique_ips=2)

    @pytest.mark.asyncio
    async def test_prune(self, db_session):
        await _seed(db_session)

        removed = await LoginAttemptLog.prune(db_session, NOW - timedelta(days=30))

        assert removed == 1
        assert len(await LoginAttemptLog.recent(db_session, limit=10)) == 3
