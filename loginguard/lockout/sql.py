"""Database-backed lockout store.

``register_failure`` is one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
statement whose ``CASE`` expressions encode the failure rules, so the row
lock taken by the upsert serialises concurrent failures for the same key.
Works on PostgreSQL and SQLite (3.35+).
"""

import logging
from datetime import datetime
from typing import Any, Literal

from sqlalchemy import DateTime, and_, case, delete, false, literal, null, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loginguard.db.models import LockoutRecord, as_utc
from loginguard.lockout.policy import LockoutPolicy, LockoutState
from loginguard.lockout.store import LockoutStore, LockoutStoreError

logger = logging.getLogger(__name__)

_table = LockoutRecord.__table__  # type: ignore[attr-defined]


def _ts(value: datetime) -> Any:
    """Bind a timestamp with an explicit timezone-aware type."""
    return literal(value, DateTime(timezone=True))


def _to_state(key: str, failed: int, locked_until: Any, last_attempt_at: Any) -> LockoutState:
    return LockoutState(
        key=key,
        failed_attempts=failed,
        locked_until=as_utc(locked_until),
        last_attempt_at=as_utc(last_attempt_at),
    )


class SqlLockoutStore(LockoutStore):
    """Lockout records in the ``lockout_records`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @property
    def backend_name(self) -> Literal["database"]:
        return "database"

    async def get(self, key: str) -> LockoutState | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(
                        _table.c.failed_attempts,
                        _table.c.locked_until,
                        _table.c.last_attempt_at,
                    ).where(_table.c.key == key)
                )
                row = result.one_or_none()
        except SQLAlchemyError as e:
            raise LockoutStoreError(f"Failed to read lockout record: {e}") from e

        if row is None:
            return None
        return _to_state(key, row.failed_attempts, row.locked_until, row.last_attempt_at)

    async def register_failure(
        self, key: str, now: datetime, policy: LockoutPolicy
    ) -> LockoutState:
        deadline = now + policy.lockout_duration
        c = _table.c

        still_locked = and_(c.locked_until.is_not(None), c.locked_until > _ts(now))
        lock_expired = and_(c.locked_until.is_not(None), c.locked_until <= _ts(now))
        if policy.failure_window is not None:
            stale = and_(
                c.last_attempt_at.is_not(None),
                c.last_attempt_at <= _ts(now - policy.failure_window),
            )
        else:
            stale = false()

        next_count = case(
            (still_locked, c.failed_attempts),
            (or_(lock_expired, stale), 1),
            else_=c.failed_attempts + 1,
        )
        next_lock = case(
            (still_locked, c.locked_until),
            (next_count >= policy.threshold, _ts(deadline)),
            else_=null(),
        )
        next_last = case(
            (still_locked, c.last_attempt_at),
            else_=_ts(now),
        )

        try:
            async with self._session_factory() as session:
                insert = self._insert_for(session)
                stmt = insert(_table).values(
                    key=key,
                    failed_attempts=1,
                    locked_until=deadline if policy.threshold <= 1 else None,
                    last_attempt_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[c.key],
                    set_={
                        "failed_attempts": next_count,
                        "locked_until": next_lock,
                        "last_attempt_at": next_last,
                    },
                ).returning(c.failed_attempts, c.locked_until, c.last_attempt_at)
                result = await session.execute(stmt)
                row = result.one()
                await session.commit()
        except SQLAlchemyError as e:
            raise LockoutStoreError(f"Failed to record login failure: {e}") from e

        return _to_state(key, row.failed_attempts, row.locked_until, row.last_attempt_at)

    async def release_expired(self, key: str, now: datetime) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(_table)
                    .where(
                        _table.c.key == key,
                        _table.c.locked_until.is_not(None),
                        _table.c.locked_until <= _ts(now),
                    )
                    .values(failed_attempts=0, locked_until=None)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise LockoutStoreError(f"Failed to release expired lock: {e}") from e
        return result.rowcount > 0

    async def clear(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(_table)
                    .where(_table.c.key == key)
                    .values(failed_attempts=0, locked_until=None)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise LockoutStoreError(f"Failed to clear lockout record: {e}") from e

    async def prune(self, cutoff: datetime) -> int:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(_table).where(
                        or_(
                            _table.c.locked_until.is_(None),
                            _table.c.locked_until <= _ts(cutoff),
                        ),
                        or_(
                            _table.c.last_attempt_at.is_(None),
                            _table.c.last_attempt_at < _ts(cutoff),
                        ),
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise LockoutStoreError(f"Failed to prune lockout records: {e}") from e

        if result.rowcount:
            logger.info("Pruned %d lockout records", result.rowcount)
        return result.rowcount

    @staticmethod
    def _insert_for(session: AsyncSession) -> Any:
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise LockoutStoreError(f"Unsupported database dialect for lockout store: {dialect}")
