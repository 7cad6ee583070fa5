"""Business services for loginguard."""

from loginguard.services.attempt_log import AttemptStatistics, LoginAttemptLog
from loginguard.services.auth_service import AuthService, LoginResult

__all__ = ["AttemptStatistics", "AuthService", "LoginAttemptLog", "LoginResult"]
