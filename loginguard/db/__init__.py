"""Database module for loginguard.

This module provides database connection, models, and utilities.

Note: Password utilities (hash_password, verify_password) are in loginguard.core.security
"""

from loginguard.db.models import (
    AuthProvider,
    FailureReason,
    LockoutRecord,
    LoginAttempt,
    User,
    UserRole,
)
from loginguard.db.session import (
    close_db,
    get_async_session,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    "AuthProvider",
    "FailureReason",
    "LockoutRecord",
    "LoginAttempt",
    "User",
    "UserRole",
    "close_db",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_db",
]
