"""Security utilities for loginguard.

Password hashing and verification use Argon2id. Access tokens are
HMAC-signed JWTs carrying the user id, email and role.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

_hasher = PasswordHasher()

# Verified against for unknown accounts so a missing user costs the same
# Argon2 work as a wrong password.
_DUMMY_HASH = _hasher.hash("loginguard-dummy-password")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        _hasher.verify(password_hash, password)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False


def burn_password_check(password: str) -> None:
    """Run a verification against a throwaway hash and discard the result."""
    verify_password(password, _DUMMY_HASH)


class TokenError(Exception):
    """Raised when an access token is missing, malformed, or expired."""


def create_access_token(
    subject: str,
    claims: dict[str, Any],
    secret: str,
    ttl: timedelta,
    algorithm: str = "HS256",
    now: datetime | None = None,
) -> str:
    """Issue a signed access token.

    Args:
        subject: User id stored in the ``sub`` claim
        claims: Additional claims (email, role, auth provider)
        secret: Signing secret
        ttl: Token lifetime
        algorithm: HMAC algorithm
        now: Issue time (defaults to current UTC time)

    Returns:
        Encoded JWT string
    """
    issued_at = now or datetime.now(UTC)
    payload = {
        **claims,
        "sub": subject,
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        TokenError: If the signature or expiry check fails
    """
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e
