"""Tests for configuration module.

Testing approach:
- Use direct constructor arguments instead of mocking
- Use monkeypatch for environment variables
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from loginguard.core.config import (
    AuthConfig,
    DatabaseConfig,
    LockoutConfig,
    ServerConfig,
    Settings,
    get_settings,
    parse_duration,
    validate_settings,
)


class TestParseDuration:
    """Tests for the duration string format."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("30s", timedelta(seconds=30)),
            ("5m", timedelta(minutes=5)),
            ("24h", timedelta(hours=24)),
            ("7d", timedelta(days=7)),
            ("0s", timedelta(0)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "5", "m5", "5 m", "1w", "-5m"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_default_values(self):
        config = ServerConfig()
        assert config.bind == ":8080"
        assert config.host_port() == ("0.0.0.0", 8080)

    def test_host_port_with_host(self):
        assert ServerConfig(bind="127.0.0.1:9000").host_port() == ("127.0.0.1", 9000)

    def test_bind_validation_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            ServerConfig(bind="")
        assert "bind address cannot be empty" in str(exc_info.value)

    def test_bind_validation_no_port(self):
        with pytest.raises(ValidationError) as exc_info:
            ServerConfig(bind="localhost")
        assert "must be in format 'host:port'" in str(exc_info.value)

    def test_bind_validation_invalid_port(self):
        with pytest.raises(ValidationError) as exc_info:
            ServerConfig(bind=":99999")
        assert "must be between 1 and 65535" in str(exc_info.value)

    def test_bind_validation_non_numeric_port(self):
        with pytest.raises(ValidationError) as exc_info:
            ServerConfig(bind=":http")
        assert "must be a number" in str(exc_info.value)


class TestAuthConfig:
    """Tests for AuthConfig."""

    def test_token_ttl_delta(self):
        assert AuthConfig(token_ttl="24h").token_ttl_delta() == timedelta(hours=24)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AuthConfig(jwt_secret="")
        assert "jwt_secret cannot be empty" in str(exc_info.value)

    def test_invalid_token_ttl(self):
        with pytest.raises(ValidationError) as exc_info:
            AuthConfig(token_ttl="forever")
        assert "Invalid token_ttl format" in str(exc_info.value)

    def test_unsupported_algorithm_rejected(self):
        with pytest.raises(ValidationError):
            AuthConfig(jwt_algorithm="RS256")


class TestLockoutConfig:
    """Tests for LockoutConfig."""

    def test_default_values(self):
        config = LockoutConfig()
        assert config.backend == "database"
        assert config.threshold == 3
        assert config.duration_delta() == timedelta(minutes=5)
        assert config.failure_window_delta() == timedelta(minutes=5)
        assert config.key_mode == "both"
        assert config.trust_proxy_headers is True
        assert config.attempt_retention_delta() == timedelta(days=30)
        assert config.record_retention_delta() == timedelta(days=1)

    def test_zero_failure_window_disables_decay(self):
        assert LockoutConfig(failure_window="0s").failure_window_delta() is None

    def test_zero_duration_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            LockoutConfig(duration="0m")
        assert "duration must be greater than zero" in str(exc_info.value)

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            LockoutConfig(threshold=0)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            LockoutConfig(backend="mongodb")

    def test_unknown_key_mode_rejected(self):
        with pytest.raises(ValidationError):
            LockoutConfig(key_mode="device")


class TestDatabaseConfig:
    def test_empty_url_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DatabaseConfig(url="")
        assert "database URL cannot be empty" in str(exc_info.value)


class TestSettingsFromEnv:
    """Env-only configuration."""

    def test_nested_env_vars(self, monkeypatch):
        monkeypatch.setenv("LOGINGUARD_LOCKOUT__THRESHOLD", "5")
        monkeypatch.setenv("LOGINGUARD_LOCKOUT__DURATION", "15m")
        monkeypatch.setenv("LOGINGUARD_LOCKOUT__KEY_MODE", "email")
        monkeypatch.setenv("LOGINGUARD_DATABASE__URL", "sqlite+aiosqlite:///./test.db")

        settings = Settings()

        assert settings.lockout.threshold == 5
        assert settings.lockout.duration_delta() == timedelta(minutes=15)
        assert settings.lockout.key_mode == "email"
        assert settings.database.url == "sqlite+aiosqlite:///./test.db"

    def test_invalid_env_value_has_clear_error(self, monkeypatch):
        monkeypatch.setenv("LOGINGUARD_LOCKOUT__DURATION", "five minutes")
        with pytest.raises(ValidationError) as exc_info:
            Settings()
        assert "Invalid duration format" in str(exc_info.value)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_settings_reads_env_each_time(self, monkeypatch):
        first = validate_settings()
        monkeypatch.setenv("LOGINGUARD_LOCKOUT__THRESHOLD", "7")

        second = validate_settings()

        assert first.lockout.threshold == 3
        assert second.lockout.threshold == 7

    def test_redis_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("LOGINGUARD_REDIS__SOCKET_TIMEOUT", "0")
        with pytest.raises(ValidationError):
            Settings()
