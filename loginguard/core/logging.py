"""Structured logging for loginguard.

Login handling logs a lot of request-derived data, so the JSON formatter
masks credential fields that end up in `extra` (passwords, tokens,
authorization headers) before they are written. Every record carries the
request ID set by `RequestIdMiddleware`.
"""

import logging
import sys
from contextvars import ContextVar
from enum import StrEnum
from typing import Any, Literal

from pythonjsonlogger.json import JsonFormatter as BaseJsonFormatter

# Context variable for request ID (set by middleware)
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "***"
SENSITIVE_FIELDS = frozenset(
    {"password", "password_hash", "token", "access_token", "authorization", "jwt_secret"}
)


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGIN_BLOCKED = "login_blocked"
    LOCKOUT_TRIGGERED = "lockout_triggered"
    LOCKOUT_RELEASED = "lockout_released"
    LOCKOUT_CLEARED = "lockout_cleared"
    LOCKOUT_STORE_ERROR = "lockout_store_error"
    ATTEMPT_LOG_ERROR = "attempt_log_error"


class LoginGuardJsonFormatter(BaseJsonFormatter):
    """JSON formatter with `timestamp`, `level`, `module` and `request_id`.

    Values of fields named in `SENSITIVE_FIELDS` are replaced with `***`.
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        for field in SENSITIVE_FIELDS.intersection(log_record):
            log_record[field] = REDACTED

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["module"] = record.name

        request_id = request_id_ctx.get()
        if request_id:
            log_record["request_id"] = request_id

        log_record.pop("levelname", None)
        log_record.pop("name", None)


# uvicorn.access is replaced by the request log in RequestIdMiddleware
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "httpx", "httpcore")


class RequestIdFilter(logging.Filter):
    """Expose the current request ID as ``%(request_id)s`` for text output."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or "-"
        return True


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    json_format: bool = True,
) -> None:
    """Install a single stdout handler on the root logger.

    JSON output is for the server; the management commands use the text
    format.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level))

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level))

    formatter: logging.Formatter
    if json_format:
        formatter = LoginGuardJsonFormatter(
            fmt="%(timestamp)s %(level)s %(module)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    else:
        handler.addFilter(RequestIdFilter())
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_request_id() -> str | None:
    return request_id_ctx.get()