"""API schemas shared by the server and the client."""

from loginguard.schemas.auth import (
    LockStatusResponse,
    LoginRequest,
    LoginResponse,
    UserProfile,
)

__all__ = ["LockStatusResponse", "LoginRequest", "LoginResponse", "UserProfile"]
