"""Database models for loginguard.

Models are defined using SQLModel (SQLAlchemy + Pydantic).

Tables:
- users: Marketplace accounts (buyers, artisans, admins)
- lockout_records: Failed login counters and lock deadlines per identity key
- login_attempts: Audit trail of every login attempt
"""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Index
from sqlmodel import Field, SQLModel
from ulid import ULID


def generate_ulid() -> str:
    return str(ULID())


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class UserRole(str, Enum):
    USER = "user"
    BUYER = "buyer"
    ARTISAN = "artisan"
    ADMIN = "admin"


class AuthProvider(str, Enum):
    EMAIL_PASSWORD = "email-password"
    FIREBASE = "firebase"


class FailureReason(str, Enum):
    """Why a login attempt was rejected."""

    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    PROVIDER_MISMATCH = "provider_mismatch"
    ACCOUNT_INACTIVE = "account_inactive"
    LOCKED = "locked"


class User(SQLModel, table=True):
    """User account model."""

    __tablename__ = "users"

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    email: str = Field(unique=True, index=True)
    name: str = Field(default="")
    password_hash: str | None = Field(default=None)
    role: UserRole = Field(default=UserRole.USER)
    auth_provider: AuthProvider = Field(default=AuthProvider.EMAIL_PASSWORD)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True))
    )
    last_login_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )


class LockoutRecord(SQLModel, table=True):
    """Failure counter and lock deadline for one identity key."""

    __tablename__ = "lockout_records"

    key: str = Field(primary_key=True)
    failed_attempts: int = Field(default=0)
    locked_until: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    last_attempt_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), index=True)
    )


class LoginAttempt(SQLModel, table=True):
    """Audit row written for every login attempt."""

    __tablename__ = "login_attempts"
    __table_args__ = (
        Index("ix_login_attempts_email_created", "email", "created_at"),
        Index("ix_login_attempts_ip_created", "ip_address", "created_at"),
    )

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    email: str
    ip_address: str
    user_agent: str = Field(default="unknown")
    success: bool = Field(default=False)
    failure_reason: FailureReason | None = Field(default=None)
    attempt_number: int = Field(default=0)
    lock_until: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    created_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True))
    )
