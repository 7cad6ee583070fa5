"""Lockout administration CLI commands.

Examples:
    loginguard-lockout status user@example.com
    loginguard-lockout unlock 203.0.113.7
    loginguard-lockout attempts --email user@example.com --limit 50
    loginguard-lockout stats --days 7
    loginguard-lockout prune
"""

import argparse
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.cli.common import configure_logging, database_session
from loginguard.core.config import Settings, get_settings
from loginguard.core.redis import close_redis, init_redis
from loginguard.lockout import LockoutLedger, build_ledger
from loginguard.lockout.keys import normalize_email, parse_key
from loginguard.lockout.policy import format_wait
from loginguard.services.attempt_log import LoginAttemptLog


async def show_status(ledger: LockoutLedger, identifier: str) -> None:
    """Print the lockout record for an email or address."""
    key = parse_key(identifier)
    state = await ledger.store.get(key)
    if state is None:
        print(f"{key}: no failed attempts recorded")
        return

    lock = ledger.policy.evaluate(state, ledger.now())
    if lock is not None:
        print(
            f"{key}: LOCKED until {lock.locked_until.isoformat()} "
            f"({format_wait(lock.remaining_seconds)} remaining)"
        )
    else:
        print(
            f"{key}: unlocked, {state.failed_attempts}/{ledger.policy.threshold} failed attempts"
        )


async def unlock(ledger: LockoutLedger, identifier: str) -> bool:
    """Clear the lock and failure count for an email or address."""
    key = parse_key(identifier)
    was_locked = await ledger.unlock(key)
    if was_locked:
        print(f"{key}: unlocked")
    else:
        print(f"{key}: was not locked, failure count reset")
    return was_locked


async def show_attempts(session: AsyncSession, limit: int, email: str | None) -> None:
    """Print the most recent login attempts."""
    attempts = await LoginAttemptLog.recent(
        session, limit=limit, email=normalize_email(email) if email else None
    )
    if not attempts:
        print("No login attempts found")
        return

    print(f"{'Time':<20} {'Email':<32} {'IP':<16} {'Result':<8} {'Reason':<20} {'#':<3}")
    print("-" * 104)
    for attempt in attempts:
        created = attempt.created_at.strftime("%Y-%m-%d %H:%M:%S")
        result = "ok" if attempt.success else "failed"
        reason = attempt.failure_reason.value if attempt.failure_reason else ""
        print(
            f"{created:<20} {attempt.email:<32} {attempt.ip_address:<16} "
            f"{result:<8} {reason:<20} {attempt.attempt_number:<3}"
        )


async def show_stats(session: AsyncSession, email: str | None, days: int) -> None:
    """Print attempt counts over the last ``days`` days."""
    stats = await LoginAttemptLog.statistics(
        session, email=normalize_email(email) if email else None, days=days
    )
    scope = email or "all accounts"
    print(f"Login attempts for {scope}, last {days} day(s):")
    print(f"  total:      {stats.total}")
    print(f"  successful: {stats.successful}")
    print(f"  failed:     {stats.failed}")
    print(f"  unique IPs: {stats.unique_ips}")


async def prune(ledger: LockoutLedger, session: AsyncSession, settings: Settings) -> tuple[int, int]:
    """Delete stale lockout records and expired audit rows."""
    now = ledger.now()
    records = await ledger.store.prune(now - settings.lockout.record_retention_delta())
    attempts = await LoginAttemptLog.prune(
        session, now - settings.lockout.attempt_retention_delta()
    )
    print(f"Pruned {records} lockout record(s) and {attempts} login attempt(s)")
    return records, attempts


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()
    async with database_session() as session:
        if settings.lockout.backend == "redis":
            await init_redis(settings.redis)
        try:
            ledger = build_ledger(settings)
            if args.command == "status":
                await show_status(ledger, args.identifier)
            elif args.command == "unlock":
                await unlock(ledger, args.identifier)
            elif args.command == "attempts":
                await show_attempts(session, args.limit, args.email)
            elif args.command == "stats":
                await show_stats(session, args.email, args.days)
            elif args.command == "prune":
                await prune(ledger, session, settings)
        finally:
            if settings.lockout.backend == "redis":
                await close_redis()


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="loginguard lockout administration",
        prog="loginguard-lockout",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    status_parser = subparsers.add_parser("status", help="Show lock status for a key")
    status_parser.add_argument("identifier", help="Email, IP address, or prefixed key")

    unlock_parser = subparsers.add_parser("unlock", help="Clear a lock (email or IP)")
    unlock_parser.add_argument("identifier", help="Email, IP address, or prefixed key")

    attempts_parser = subparsers.add_parser("attempts", help="List recent login attempts")
    attempts_parser.add_argument("--email", help="Only attempts for this email")
    attempts_parser.add_argument("--limit", type=_positive_int, default=20)

    stats_parser = subparsers.add_parser("stats", help="Attempt statistics")
    stats_parser.add_argument("--email", help="Only attempts for this email")
    stats_parser.add_argument("--days", type=_positive_int, default=7)

    subparsers.add_parser("prune", help="Delete stale records and old attempts")

    args = parser.parse_args()
    configure_logging()
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
