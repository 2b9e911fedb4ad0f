"""
Rate limiting storage settings.
"""
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RateLimitSettings(BaseSettings):
    """
    Defines settings for the rate limiting counter store.

    Security Note:
        - REDIS_URL should use a secure protocol (rediss://) in production
          with proper TLS configuration and a password.
    Performance Note:
        - The in-memory backend keeps counters per process. Deployments running
          more than one worker or node must use the redis backend, otherwise
          every process enforces its own quota.
    """
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BACKEND: str = Field(default="memory", pattern="^(memory|redis)$")
    RATE_LIMIT_KEY_PREFIX: str = "ratelimit"
    RATE_LIMIT_SWEEP_PROBABILITY: float = Field(default=0.01, ge=0.0, le=1.0)

    REDIS_URL: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def validate_redis_url(cls, v: str | None) -> str:
        """
        Ensures the Redis URL, when given, uses a redis scheme.

        Args:
            v: Explicitly provided URL or None.

        Returns:
            The stripped URL, or an empty string.

        Raises:
            ValueError: If the URL does not start with redis:// or rediss://.
        """
        if not v:
            return ""
        v = v.strip()
        if not v.startswith(("redis://", "rediss://")):
            logger.error("REDIS_URL must start with redis:// or rediss://")
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v
