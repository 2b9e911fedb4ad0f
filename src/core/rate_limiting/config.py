"""Rate Limiting Configuration

Centralized catalogue of rate limiting policies, allowing limits to be
adjusted per environment without code changes. Each policy reads
``RATE_LIMIT_<NAME>_REQUESTS`` and ``RATE_LIMIT_<NAME>_WINDOW_MS``.
"""

from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.rate_limiting.value_objects import RateLimitPolicy

POLICY_NAMES = ("auth", "register", "api", "report")


class RateLimitingConfig(BaseSettings):
    """Configuration for the named rate limiting policies."""

    # Login attempts
    auth_requests: int = Field(5, gt=0, alias="RATE_LIMIT_AUTH_REQUESTS")
    auth_window_ms: int = Field(60_000, gt=0, alias="RATE_LIMIT_AUTH_WINDOW_MS")

    # Account creation
    register_requests: int = Field(3, gt=0, alias="RATE_LIMIT_REGISTER_REQUESTS")
    register_window_ms: int = Field(3_600_000, gt=0, alias="RATE_LIMIT_REGISTER_WINDOW_MS")

    # General API traffic
    api_requests: int = Field(60, gt=0, alias="RATE_LIMIT_API_REQUESTS")
    api_window_ms: int = Field(60_000, gt=0, alias="RATE_LIMIT_API_WINDOW_MS")

    # Report generation
    report_requests: int = Field(5, gt=0, alias="RATE_LIMIT_REPORT_REQUESTS")
    report_window_ms: int = Field(60_000, gt=0, alias="RATE_LIMIT_REPORT_WINDOW_MS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    def policy(self, name: str) -> RateLimitPolicy:
        """Build the policy called ``name``.

        Raises:
            KeyError: If no policy with that name is configured
        """
        if name not in POLICY_NAMES:
            raise KeyError(f"Unknown rate limit policy: {name}")
        return RateLimitPolicy(
            window_ms=getattr(self, f"{name}_window_ms"),
            max_requests=getattr(self, f"{name}_requests"),
            name=name,
        )

    def policies(self) -> Dict[str, RateLimitPolicy]:
        """Return every configured policy keyed by name."""
        return {name: self.policy(name) for name in POLICY_NAMES}
