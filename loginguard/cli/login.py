"""Terminal login front-end.

Prompts for credentials, shows the attempts-remaining message, and while
locked renders a live countdown and refuses input until it reaches zero.

Example:
    loginguard-login --url http://localhost:8080 --email admin@example.com
"""

import argparse
import asyncio
import getpass
import sys

from loginguard.client.api import AuthClient, LoginSucceeded
from loginguard.client.view import Banner, BannerKind, LoginView


class TerminalRenderer:
    """Prints banner changes; the countdown rewrites one line in place."""

    def __init__(self, out=None) -> None:
        self._out = out or sys.stdout
        self._last: Banner | None = None

    def __call__(self, view: LoginView) -> None:
        banner = view.banner
        if banner == self._last:
            return
        previous, self._last = self._last, banner

        if previous is not None and previous.kind is BannerKind.LOCKED:
            if banner is None or banner.kind is not BannerKind.LOCKED:
                self._out.write("\nLock expired. You can try again.\n")
        if banner is None:
            self._out.flush()
            return
        if banner.kind is BannerKind.LOCKED:
            self._out.write(f"\r{banner.text}")
        else:
            self._out.write(f"{banner.text}\n")
        self._out.flush()


async def run_login(base_url: str, email: str | None = None) -> int:
    """Interactive login loop. Returns the process exit code."""
    view = LoginView(on_change=TerminalRenderer())
    async with AuthClient(base_url) as client:
        await view.mount(client, email)
        try:
            while True:
                if view.locked:
                    await view.countdown.wait_unlocked()
                    continue

                login_email = email or await asyncio.to_thread(input, "Email: ")
                password = await asyncio.to_thread(getpass.getpass, "Password: ")
                if not login_email or not password:
                    print("Email and password are required")
                    continue

                outcome = await view.submit(client, login_email, password)
                if isinstance(outcome, LoginSucceeded):
                    print(f"Token: {outcome.token}")
                    return 0
        except EOFError:
            print()
            return 1
        finally:
            view.close()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Log in to a loginguard server",
        prog="loginguard-login",
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8080",
        help="Server base URL (default: http://localhost:8080)",
    )
    parser.add_argument("--email", help="Email (will prompt if not provided)")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run_login(args.url, args.email)))
    except KeyboardInterrupt:
        print()
        sys.exit(130)


if __name__ == "__main__":
    main()
