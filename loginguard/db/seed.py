"""Initial data for a fresh database."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.core.security import hash_password
from loginguard.db.models import User, UserRole

logger = logging.getLogger(__name__)


async def ensure_initial_admin(session: AsyncSession, email: str, password: str) -> User:
    """Create the initial admin account if it does not exist yet."""
    email = email.strip().lower()
    result = await session.execute(
        select(User).where(User.email == email)  # type: ignore[arg-type]
    )
    existing = result.scalar_one_or_none()

    if existing:
        logger.info("Initial admin already exists: %s", email)
        return existing

    admin = User(
        email=email,
        name="Administrator",
        password_hash=hash_password(password),
        role=UserRole.ADMIN,
    )
    session.add(admin)
    await session.commit()
    await session.refresh(admin)
    logger.info("Initial admin created: %s", email)
    return admin
