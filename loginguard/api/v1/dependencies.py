"""API v1 dependencies for loginguard.

Contains shared dependencies for API endpoints.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.core.config import get_settings
from loginguard.core.errors import UnauthorizedError
from loginguard.core.security import TokenError, decode_access_token
from loginguard.db import User, get_async_session
from loginguard.lockout import LockoutLedger, build_ledger
from loginguard.lockout.keys import client_address
from loginguard.services.auth_service import AuthService


@lru_cache
def get_lockout_ledger() -> LockoutLedger:
    """Get lockout ledger singleton for the configured backend."""
    return build_ledger(get_settings())


def get_auth_service(
    ledger: Annotated[LockoutLedger, Depends(get_lockout_ledger)],
) -> AuthService:
    return AuthService(ledger=ledger, settings=get_settings())


def get_client_ip(request: Request) -> str:
    """Originating address of the request."""
    return client_address(request, get_settings().lockout.trust_proxy_headers)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_async_session)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Get current authenticated user from the bearer token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired, or
            the user no longer exists
    """
    if authorization is None:
        raise UnauthorizedError()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError()

    auth = get_settings().auth
    try:
        claims = decode_access_token(token.strip(), auth.jwt_secret, auth.jwt_algorithm)
    except TokenError as e:
        raise UnauthorizedError("Invalid or expired token") from e

    subject = claims.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid or expired token")

    user = await db.get(User, subject)
    if user is None or not user.is_active:
        raise UnauthorizedError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_async_session)]
Ledger = Annotated[LockoutLedger, Depends(get_lockout_ledger)]
AuthSvc = Annotated[AuthService, Depends(get_auth_service)]
ClientIp = Annotated[str, Depends(get_client_ip)]
