"""User management CLI commands."""

import argparse
import asyncio
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loginguard.cli.common import configure_logging, database_session, get_password_interactive
from loginguard.core.security import hash_password
from loginguard.db import User, UserRole
from loginguard.lockout.keys import normalize_email


async def _find_user(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))  # type: ignore[arg-type]
    )
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    password: str,
    name: str = "",
    role: UserRole = UserRole.USER,
) -> User:
    """Create a new email/password user."""
    if await _find_user(session, email):
        print(f"Error: User '{email}' already exists")
        sys.exit(1)

    user = User(
        email=normalize_email(email),
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    session.add(user)
    await session.commit()
    print(f"User '{user.email}' created successfully")
    return user


async def reset_password(session: AsyncSession, email: str, password: str) -> None:
    """Reset user password."""
    user = await _find_user(session, email)
    if not user:
        print(f"Error: User '{email}' not found")
        sys.exit(1)

    user.password_hash = hash_password(password)
    await session.commit()
    print(f"Password reset for '{user.email}'")


async def list_users(session: AsyncSession) -> list[User]:
    """List all users."""
    result = await session.execute(select(User).order_by(User.email))  # type: ignore[arg-type]
    users = list(result.scalars().all())

    if not users:
        print("No users found")
        return users

    print(f"{'Email':<32} {'Role':<10} {'Active':<8} {'Last Login':<20}")
    print("-" * 72)
    for user in users:
        last_login = (
            user.last_login_at.strftime("%Y-%m-%d %H:%M:%S") if user.last_login_at else "never"
        )
        print(f"{user.email:<32} {user.role.value:<10} {str(user.is_active):<8} {last_login:<20}")
    return users


async def delete_user(session: AsyncSession, email: str) -> None:
    """Delete a user."""
    user = await _find_user(session, email)
    if not user:
        print(f"Error: User '{email}' not found")
        sys.exit(1)

    await session.delete(user)
    await session.commit()
    print(f"User '{user.email}' deleted")


async def _run(args: argparse.Namespace) -> None:
    async with database_session() as session:
        if args.command == "create":
            await create_user(session, args.email, args.password, args.name, UserRole(args.role))
        elif args.command == "reset-password":
            await reset_password(session, args.email, args.password)
        elif args.command == "list":
            await list_users(session)
        elif args.command == "delete":
            await delete_user(session, args.email)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="loginguard user management",
        prog="loginguard-user",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # create command
    create_parser = subparsers.add_parser("create", help="Create a new user")
    create_parser.add_argument("email", help="Email of the user to create")
    create_parser.add_argument("--name", default="", help="Display name")
    create_parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.USER.value,
        help="Account role",
    )
    create_parser.add_argument(
        "--password", "-p",
        help="Password (will prompt if not provided)",
    )

    # reset-password command
    reset_parser = subparsers.add_parser("reset-password", help="Reset user password")
    reset_parser.add_argument("email", help="Email of the user")
    reset_parser.add_argument(
        "--password", "-p",
        help="New password (will prompt if not provided)",
    )

    # list command
    subparsers.add_parser("list", help="List all users")

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a user")
    delete_parser.add_argument("email", help="Email of the user to delete")
    delete_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Skip confirmation",
    )

    args = parser.parse_args()
    configure_logging()

    if args.command in ("create", "reset-password"):
        args.password = args.password or get_password_interactive()
    elif args.command == "delete" and not args.force:
        confirm = input(f"Delete user '{args.email}'? [y/N]: ")
        if confirm.lower() != "y":
            print("Cancelled")
            sys.exit(0)

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
