"""Tests for the auth API client."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from loginguard.client.api import (
    DEFAULT_LOCK_SECONDS,
    GENERIC_FAILURE,
    AuthClient,
    AuthClientError,
    LoginLocked,
    LoginRejected,
    LoginSucceeded,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

USER = {
    "id": "01HX0000000000000000000000",
    "email": "buyer@example.com",
    "name": "Test Buyer",
    "role": "buyer",
    "authProvider": "email-password",
    "isActive": True,
}


def _client(handler) -> AuthClient:
    return AuthClient(
        "http://test", transport=httpx.MockTransport(handler), clock=lambda: NOW
    )


def _reply(status_code: int, body=None, **kwargs):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body, **kwargs)

    return handler


class TestLogin:
    @pytest.mark.asyncio
    async def test_success(self):
        async with _client(_reply(200, {"success": True, "user": USER, "token": "jwt"})) as client:
            outcome = await client.login("buyer@example.com", "secret")

            assert isinstance(outcome, LoginSucceeded)
            assert outcome.user.email == "buyer@example.com"
            assert client.token == "jwt"

    @pytest.mark.asyncio
    async def test_sends_credentials(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(401, json={"message": "nope"})

        async with _client(handler) as client:
            await client.login("buyer@example.com", "secret")

        assert seen["path"] == "/api/v1/auth/login"
        assert b'"password":"secret"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_rejected_with_remaining_attempts(self):
        body = {
            "success": False,
            "code": "INVALID_CREDENTIALS",
            "message": "Invalid email or password. 2 attempts remaining before account lock.",
            "remainingAttempts": 2,
        }
        async with _client(_reply(401, body)) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert outcome == LoginRejected(body["message"], 2)

    @pytest.mark.asyncio
    async def test_rejected_without_body(self):
        async with _client(_reply(500, content=b"oops")) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert outcome == LoginRejected(GENERIC_FAILURE)

    @pytest.mark.asyncio
    async def test_locked_uses_server_deadline(self):
        lock_until = NOW + timedelta(minutes=4)
        body = {
            "locked": True,
            "lockUntil": lock_until.isoformat().replace("+00:00", "Z"),
            "remainingTime": 240,
            "message": "Too many failed login attempts.",
        }
        async with _client(_reply(429, body)) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert outcome == LoginLocked(lock_until, 240, "Too many failed login attempts.")

    @pytest.mark.asyncio
    async def test_locked_without_deadline_derives_it(self):
        async with _client(_reply(429, {"remainingTime": 90})) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert isinstance(outcome, LoginLocked)
        assert outcome.lock_until == NOW + timedelta(seconds=90)

    @pytest.mark.asyncio
    async def test_locked_without_any_timing_defaults(self):
        async with _client(_reply(429, content=b"")) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert isinstance(outcome, LoginLocked)
        assert outcome.remaining_time == DEFAULT_LOCK_SECONDS
        assert outcome.lock_until == NOW + timedelta(seconds=DEFAULT_LOCK_SECONDS)

    @pytest.mark.asyncio
    async def test_locked_flag_on_other_status(self):
        async with _client(_reply(403, {"locked": True, "remainingTime": 30})) as client:
            outcome = await client.login("buyer@example.com", "wrong")

        assert isinstance(outcome, LoginLocked)

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(AuthClientError):
                await client.login("buyer@example.com", "secret")


class TestCheckLock:
    @pytest.mark.asyncio
    async def test_unlocked(self):
        async with _client(_reply(200, {"success": True, "locked": False})) as client:
            status = await client.check_lock()

        assert status is not None
        assert status.locked is False

    @pytest.mark.asyncio
    async def test_locked(self):
        lock_until = NOW + timedelta(seconds=100)
        body = {"success": True, "locked": True, "lockUntil": lock_until.isoformat(), "remainingTime": 100}
        async with _client(_reply(200, body)) as client:
            status = await client.check_lock()

        assert status.lock_until == lock_until
        assert status.remaining_time == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("email", "query"),
        [(None, {}), ("buyer@example.com", {"email": "buyer@example.com"})],
    )
    async def test_sends_email_when_known(self, email, query):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["query"] = dict(request.url.params)
            return httpx.Response(200, json={"success": True, "locked": False})

        async with _client(handler) as client:
            await client.check_lock(email)

        assert seen["path"] == "/api/v1/auth/check-ip-lock"
        assert seen["query"] == query

    @pytest.mark.asyncio
    async def test_locked_without_deadline(self):
        async with _client(_reply(200, {"locked": True})) as client:
            status = await client.check_lock()

        assert status.lock_until == NOW + timedelta(seconds=DEFAULT_LOCK_SECONDS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "handler",
        [
            _reply(500, {"success": False}),
            _reply(200, content=b"not json"),
            _reply(200, {"unexpected": "shape"}),
        ],
    )
    async def test_unknown_status(self, handler):
        async with _client(handler) as client:
            assert await client.check_lock() is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            assert await client.check_lock() is None


class TestMe:
    @pytest.mark.asyncio
    async def test_requires_login(self):
        async with _client(_reply(200, USER)) as client:
            with pytest.raises(AuthClientError):
                await client.me()

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/login"):
                return httpx.Response(200, json={"success": True, "user": USER, "token": "jwt"})
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json=USER)

        async with _client(handler) as client:
            await client.login("buyer@example.com", "secret")
            profile = await client.me()

        assert seen["authorization"] == "Bearer jwt"
        assert profile.name == "Test Buyer"

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/login"):
                return httpx.Response(200, json={"success": True, "user": USER, "token": "jwt"})
            return httpx.Response(401, json={"code": "UNAUTHORIZED"})

        async with _client(handler) as client:
            await client.login("buyer@example.com", "secret")
            with pytest.raises(AuthClientError):
                await client.me()
