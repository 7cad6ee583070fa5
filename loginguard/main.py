"""loginguard - FastAPI application for password login with account lockout."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from loginguard import __version__
from loginguard.api.v1 import router as api_v1_router
from loginguard.api.v1.dependencies import get_lockout_ledger
from loginguard.core.config import get_settings
from loginguard.core.errors import (
    AccountLockedError,
    InternalError,
    InvalidRequestError,
    LoginGuardError,
)
from loginguard.core.logging import LogEvent, setup_logging
from loginguard.core.middleware import RequestIdMiddleware
from loginguard.core.redis import close_redis, init_redis
from loginguard.db import close_db, get_session_factory, init_db
from loginguard.db.seed import ensure_initial_admin

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler - initializes storage and validates config on startup."""
    settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.json_format)
    logger.info(
        "Configuration loaded",
        extra={
            "server_bind": settings.server.bind,
            "lockout_backend": settings.lockout.backend,
            "lockout_threshold": settings.lockout.threshold,
            "lockout_duration": settings.lockout.duration,
            "key_mode": settings.lockout.key_mode,
            "database_url": settings.database.url.split("@")[-1],  # Hide credentials
        },
    )

    await init_db(
        settings.database.url,
        settings.database.echo,
        create_tables=settings.database.create_tables,
    )
    if settings.lockout.backend == "redis":
        await init_redis(settings.redis)

    if settings.auth.initial_admin_password:
        async with get_session_factory()() as session:
            await ensure_initial_admin(
                session,
                settings.auth.initial_admin_email,
                settings.auth.initial_admin_password,
            )

    logger.info("Application started", extra={"event": LogEvent.APP_STARTED})

    yield

    await get_lockout_ledger().store.close()
    get_lockout_ledger.cache_clear()
    if settings.lockout.backend == "redis":
        await close_redis()
    await close_db()
    logger.info("Application stopped", extra={"event": LogEvent.APP_STOPPED})


app = FastAPI(
    title="loginguard",
    description="Password login with failed-attempt lockout",
    version=__version__,
    lifespan=lifespan,
)

# Add middleware (order matters: first added = outermost)
app.add_middleware(RequestIdMiddleware)

app.include_router(api_v1_router)


@app.exception_handler(AccountLockedError)
async def account_locked_handler(_request: Request, exc: AccountLockedError) -> JSONResponse:
    """Handle AccountLockedError with Retry-After header."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers={"Retry-After": str(exc.retry_after)},
    )


@app.exception_handler(LoginGuardError)
async def loginguard_error_handler(_request: Request, exc: LoginGuardError) -> JSONResponse:
    """Handle LoginGuardError exceptions and return standardized error responses."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 INVALID_REQUEST."""
    fields = sorted(
        {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
    )
    message = "Invalid request"
    if fields:
        message = f"Invalid or missing field(s): {', '.join(fields)}"
    error = InvalidRequestError(message)
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(Exception)
async def generic_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions and return standardized error responses."""
    logger.exception("Unexpected error: %s", exc)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "ok"}


def main() -> None:
    """Run the API server."""
    host, port = get_settings().server.host_port()
    uvicorn.run("loginguard.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
