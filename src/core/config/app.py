"""
Application-specific settings.
"""
from typing import List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from src.domain.value_objects.runtime_mode import RuntimeMode


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and CORS origins.

    Security Note:
        - Ensure ALLOWED_ORIGINS is explicitly set to trusted domains in production
          to prevent unauthorized cross-origin requests
          (OWASP A05:2021 - Security Misconfiguration).
        - Only the ``development`` environment exposes raw error messages and
          stack traces to API clients; every other environment runs in
          production mode.
    """
    PROJECT_NAME: str = "bastion"
    VERSION: str = "0.1.0"
    APP_ENV: str = Field(
        default="development",
        pattern="^(development|test|staging|production)$",
    )
    DEBUG: bool = False

    API_HOST: str = "0.0.0.0"
    API_PORT: int = Field(ge=1, le=65535, default=8000)

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    ALLOWED_ORIGINS: Union[str, List[str]] = Field(default="http://0.0.0.0:8000")
    SECURITY_HEADERS_ENABLED: bool = True

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Splits a comma-separated string of origins into a list.

        Args:
            v: Input value as a string or list of origins.

        Returns:
            List of stripped origin strings.
        """
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @property
    def runtime_mode(self) -> RuntimeMode:
        """The mode threaded into the error classifier and the audit sink."""
        return RuntimeMode.from_environment(self.APP_ENV)
