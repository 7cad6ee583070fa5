"""Shared setup for the management commands."""

import getpass
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.core.config import get_settings
from loginguard.core.logging import setup_logging
from loginguard.db.session import close_db, get_session_factory, init_db


def configure_logging() -> None:
    """Human-readable logs on stdout for interactive commands."""
    setup_logging(get_settings().logging.level, json_format=False)


@asynccontextmanager
async def database_session() -> AsyncGenerator[AsyncSession]:
    """Open the configured database for the duration of one command."""
    settings = get_settings()
    await init_db(
        settings.database.url,
        settings.database.echo,
        create_tables=settings.database.create_tables,
    )
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await close_db()


def get_password_interactive(confirm: bool = True) -> str:
    """Get password interactively with optional confirmation."""
    password = getpass.getpass("Password: ")
    if not password:
        print("Error: Password cannot be empty")
        sys.exit(1)

    if confirm:
        password_confirm = getpass.getpass("Confirm password: ")
        if password != password_confirm:
            print("Error: Passwords do not match")
            sys.exit(1)

    return password
