"""Main application settings and configuration management.

This module composes all the application settings from the different modules
(app, rate limiting storage) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.

Environment Support:
- Development: Uses .env, raw error details are returned to API clients
- Test: Uses .env.test, behaves like production, missing Redis only warns
- Staging: Uses .env.staging
- Production: Uses .env.production
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .redis import RateLimitSettings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Settings(AppSettings, RateLimitSettings):
    """The main settings class that aggregates all application configurations.

    It inherits from all the specialized settings classes, providing a unified
    interface to all configuration parameters.

    Usage:
        - Access settings via the singleton instance `settings` throughout the application.
        - Components that behave differently per environment receive
          `settings.runtime_mode` at construction time instead of reading
          `APP_ENV` on every call.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="allow"
    )

    def __init__(self, **kwargs):
        """Initialize settings with environment-specific configuration."""
        super().__init__(**kwargs)

        if self.APP_ENV == "development":
            self.DEBUG = True
            self.LOG_JSON = False

        logger.info("Settings loaded: env=%s runtime_mode=%s", self.APP_ENV, self.runtime_mode.value)

    def validate_required_fields(self) -> None:
        """Validates that the selected configuration is complete.

        The redis rate limiting backend needs a REDIS_URL. In the test
        environment a missing URL only produces a warning.

        Raises:
            ValueError: If required fields are missing outside the test environment.
        """
        if self.RATE_LIMIT_BACKEND != "redis" or self.REDIS_URL:
            return

        error_msg = "REDIS_URL is required when RATE_LIMIT_BACKEND=redis"
        if self.APP_ENV == "test":
            logger.warning("Test mode: %s", error_msg)
            return
        logger.error(error_msg)
        raise ValueError(error_msg)


ENV_FILES = {
    "development": ".env",
    "test": ".env.test",
    "staging": ".env.staging",
    "production": ".env.production",
}


def create_settings() -> Settings:
    """Create the settings instance for the current ``APP_ENV``.

    Non-development environments prefer their own ``.env.<name>`` file and
    fall back to ``.env``; plain environment variables always apply.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")
    env_file = Path(ENV_FILES.get(env, ".env"))

    if env != "development" and env_file.exists():
        logger.info("Loading settings from %s", env_file)
        return Settings(_env_file=str(env_file))

    if not Path(".env").exists():
        logger.warning("No .env file found for %s, using environment variables only", env)
    return Settings()


# Create a singleton instance of the settings to be used across the application.
settings = create_settings()
settings.validate_required_fields()
