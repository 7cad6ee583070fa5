"""Authentication API endpoints.

Endpoints:
- POST /api/v1/auth/login - Login with email/password
- GET /api/v1/auth/check-ip-lock - Lock status for the caller's address and optional email
- GET /api/v1/auth/me - Profile of the bearer token's user
"""

from typing import Annotated

from fastapi import APIRouter, Header, Query

from loginguard.api.v1.dependencies import AuthSvc, ClientIp, CurrentUser, DbSession
from loginguard.lockout.policy import Locked
from loginguard.schemas import LockStatusResponse, LoginRequest, LoginResponse, UserProfile

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model_exclude_none=True)
async def login(
    body: LoginRequest,
    db: DbSession,
    service: AuthSvc,
    client_ip: ClientIp,
    user_agent: Annotated[str | None, Header()] = None,
) -> LoginResponse:
    """Login with email and password.

    On success, returns the user profile and an access token.
    On failure, returns 401 with the number of attempts left.
    On too many failures, returns 429 with the lock deadline.
    """
    result = await service.login(
        db,
        email=body.email,
        password=body.password,
        client_ip=client_ip,
        user_agent=user_agent,
    )
    return LoginResponse(
        user=UserProfile.model_validate(result.user),
        token=result.token,
    )


@router.get("/check-ip-lock", response_model_exclude_none=True)
async def check_ip_lock(
    service: AuthSvc,
    client_ip: ClientIp,
    email: Annotated[str | None, Query(max_length=320)] = None,
) -> LockStatusResponse:
    """Report whether the caller's address (or the given email) is locked.

    Read-only: repeated calls during a lock return the same deadline.
    """
    status = await service.lock_status(client_ip, email=email)
    if isinstance(status, Locked):
        return LockStatusResponse(
            locked=True,
            lock_until=status.locked_until,
            remaining_time=status.remaining_seconds,
        )
    return LockStatusResponse(locked=False)


@router.get("/me", response_model_exclude_none=True)
async def me(user: CurrentUser) -> UserProfile:
    """Get the authenticated user's profile."""
    return UserProfile.model_validate(user)
