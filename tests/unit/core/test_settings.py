"""Tests for configuration and the rate limit policy catalogue."""

import pytest
from pydantic import ValidationError

from src.core.config.settings import Settings
from src.core.rate_limiting.config import RateLimitingConfig
from src.domain.value_objects.runtime_mode import RuntimeMode


class TestRuntimeMode:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "app_env,mode",
        [
            ("development", RuntimeMode.DEVELOPMENT),
            ("test", RuntimeMode.PRODUCTION),
            ("staging", RuntimeMode.PRODUCTION),
            ("production", RuntimeMode.PRODUCTION),
            ("", RuntimeMode.PRODUCTION),
        ],
    )
    def test_only_development_is_development(self, app_env, mode):
        assert RuntimeMode.from_environment(app_env) is mode


class TestSettings:
    @pytest.mark.unit
    def test_development_forces_debug_console_logs(self):
        settings = Settings(APP_ENV="development", LOG_JSON=True)

        assert settings.DEBUG is True
        assert settings.LOG_JSON is False
        assert settings.runtime_mode is RuntimeMode.DEVELOPMENT

    @pytest.mark.unit
    def test_allowed_origins_are_split(self):
        settings = Settings(APP_ENV="test", ALLOWED_ORIGINS="https://a.example, https://b.example")

        assert settings.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]

    @pytest.mark.unit
    def test_redis_url_scheme_is_checked(self):
        with pytest.raises(ValidationError):
            Settings(APP_ENV="test", REDIS_URL="http://cache:6379")

    @pytest.mark.unit
    def test_sweep_probability_bounds(self):
        with pytest.raises(ValidationError):
            Settings(APP_ENV="test", RATE_LIMIT_SWEEP_PROBABILITY=1.5)

    @pytest.mark.unit
    def test_redis_backend_requires_url_outside_test(self):
        settings = Settings(APP_ENV="production", RATE_LIMIT_BACKEND="redis", REDIS_URL="")

        with pytest.raises(ValueError, match="REDIS_URL"):
            settings.validate_required_fields()

    @pytest.mark.unit
    def test_redis_backend_without_url_only_warns_in_test(self):
        settings = Settings(APP_ENV="test", RATE_LIMIT_BACKEND="redis", REDIS_URL="")

        settings.validate_required_fields()


class TestRateLimitingConfig:
    @pytest.mark.unit
    def test_default_catalogue(self):
        policies = RateLimitingConfig().policies()

        summary = {
            name: (policy.max_requests, policy.window_ms) for name, policy in policies.items()
        }
        assert summary == {
            "auth": (5, 60_000),
            "register": (3, 3_600_000),
            "api": (60, 60_000),
            "report": (5, 60_000),
        }

    @pytest.mark.unit
    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_AUTH_REQUESTS", "10")
        monkeypatch.setenv("RATE_LIMIT_AUTH_WINDOW_MS", "30000")

        policy = RateLimitingConfig().policy("auth")

        assert (policy.name, policy.max_requests, policy.window_ms) == ("auth", 10, 30_000)

    @pytest.mark.unit
    def test_unknown_policy(self):
        with pytest.raises(KeyError):
            RateLimitingConfig().policy("bulk-export")

    @pytest.mark.unit
    def test_non_positive_override_is_rejected(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_API_REQUESTS", "0")

        with pytest.raises(ValidationError):
            RateLimitingConfig()
