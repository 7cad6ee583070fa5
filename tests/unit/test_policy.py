"""Tests for the lockout policy rules."""

from datetime import UTC, datetime, timedelta

import pytest

from loginguard.core.config import LockoutConfig
from loginguard.lockout.policy import (
    AttemptsRemaining,
    Locked,
    LockoutPolicy,
    LockoutState,
    format_wait,
    remaining_seconds,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestRemainingSeconds:
    def test_rounds_up(self):
        assert remaining_seconds(NOW + timedelta(seconds=299, milliseconds=100), NOW) == 300

    def test_never_negative(self):
        assert remaining_seconds(NOW - timedelta(seconds=5), NOW) == 0

    def test_exact_deadline_is_zero(self):
        assert remaining_seconds(NOW, NOW) == 0


class TestFormatWait:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (300, "5 minutes"),
            (61, "1 minute and 1 second"),
            (299, "4 minutes and 59 seconds"),
            (45, "45 seconds"),
            (0, "0 seconds"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_wait(seconds) == expected


class TestLockoutPolicy:
    def test_from_config(self):
        policy = LockoutPolicy.from_config(
            LockoutConfig(threshold=5, duration="10m", failure_window="0s")
        )
        assert policy.threshold == 5
        assert policy.lockout_duration == timedelta(minutes=10)
        assert policy.failure_window is None

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            LockoutPolicy(threshold=0)
        with pytest.raises(ValueError):
            LockoutPolicy(lockout_duration=timedelta(0))

    def test_locked_boundary_is_exclusive(self, policy):
        state = LockoutState("email:a@example.com", 3, locked_until=NOW)
        assert policy.is_locked(state, NOW) is False
        assert policy.is_locked(state, NOW - timedelta(microseconds=1)) is True

    def test_evaluate_reports_deadline(self, policy):
        deadline = NOW + timedelta(minutes=5)
        state = LockoutState("email:a@example.com", 3, locked_until=deadline)

        assert policy.evaluate(state, NOW) == Locked(deadline, 300)
        assert policy.evaluate(None, NOW) is None

    def test_evaluate_unlocked_states(self, policy):
        expired = LockoutState("email:a@example.com", 3, locked_until=NOW)
        counting = LockoutState("email:a@example.com", 2)

        assert policy.evaluate(expired, NOW) is None
        assert policy.evaluate(counting, NOW) is None


class TestNextState:
    def test_first_failure_creates_record(self, policy):
        state = policy.next_state(None, "ip:10.0.0.1", NOW)

        assert state.failed_attempts == 1
        assert state.locked_until is None
        assert state.last_attempt_at == NOW

    def test_threshold_issues_lock(self, policy):
        state = None
        for _ in range(3):
            state = policy.next_state(state, "ip:10.0.0.1", NOW)

        assert state.failed_attempts == 3
        assert state.locked_until == NOW + timedelta(minutes=5)

    def test_failure_while_locked_leaves_record_unchanged(self, policy):
        locked = LockoutState("k", 3, locked_until=NOW + timedelta(minutes=5), last_attempt_at=NOW)

        later = NOW + timedelta(minutes=2)
        assert policy.next_state(locked, "k", later) == locked

    def test_failure_after_expiry_starts_over(self, policy):
        expired = LockoutState("k", 3, locked_until=NOW, last_attempt_at=NOW - timedelta(minutes=5))

        state = policy.next_state(expired, "k", NOW)

        assert state.failed_attempts == 1
        assert state.locked_until is None

    def test_stale_failures_decay(self, policy):
        old = LockoutState("k", 2, last_attempt_at=NOW - timedelta(minutes=5))

        assert policy.next_state(old, "k", NOW).failed_attempts == 1

    def test_recent_failures_accumulate(self, policy):
        recent = LockoutState("k", 1, last_attempt_at=NOW - timedelta(minutes=4))

        assert policy.next_state(recent, "k", NOW).failed_attempts == 2

    def test_no_decay_without_window(self):
        policy = LockoutPolicy(failure_window=None)
        old = LockoutState("k", 2, last_attempt_at=NOW - timedelta(days=3))

        state = policy.next_state(old, "k", NOW)

        assert state.failed_attempts == 3
        assert state.locked_until is not None


class TestStatusAfterFailure:
    def test_attempts_remaining(self, policy):
        state = LockoutState("k", 1, last_attempt_at=NOW)
        assert policy.status_after_failure(state, NOW) == AttemptsRemaining(2)

    def test_newly_issued_lock_is_triggered(self, policy):
        state = LockoutState("k", 3, locked_until=NOW + timedelta(minutes=5), last_attempt_at=NOW)

        status = policy.status_after_failure(state, NOW)

        assert isinstance(status, Locked)
        assert status.triggered is True
        assert status.remaining_seconds == 300

    def test_existing_lock_is_not_triggered(self, policy):
        state = LockoutState("k", 3, locked_until=NOW + timedelta(minutes=5), last_attempt_at=NOW)

        status = policy.status_after_failure(state, NOW + timedelta(seconds=30))

        assert isinstance(status, Locked)
        assert status.triggered is False
        assert status.remaining_seconds == 270
