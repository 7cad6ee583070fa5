"""Request and response schemas for the auth API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from loginguard.db.models import AuthProvider, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LoginRequest(CamelModel):
    """Request schema for login.

    The email is stripped before the length check. The password is taken as typed.
    """

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    password: str = Field(..., min_length=1)


class UserProfile(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole
    auth_provider: AuthProvider
    is_active: bool
    created_at: datetime | None = None
    last_login_at: datetime | None = None


class LoginResponse(CamelModel):
    success: bool = True
    user: UserProfile
    token: str


class LockStatusResponse(CamelModel):
    """Response of the 'am I locked' endpoint."""

    success: bool = True
    locked: bool
    lock_until: datetime | None = None
    remaining_time: int | None = None
