"""Rate limiting policy catalogue."""

from .config import RateLimitingConfig

__all__ = ["RateLimitingConfig"]
