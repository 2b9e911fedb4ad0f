"""
Rate Limiting Value Objects

Immutable value objects representing core concepts in the rate limiting domain.

Value Objects:
- RateLimitPolicy: Quota configuration for one class of endpoints
- RateLimitRecord: Counter state for one key inside its current window

Timestamps in this package are integer epoch milliseconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    """
    Immutable fixed-window quota for one endpoint class.

    A policy admits at most ``max_requests`` requests per key within a window
    of ``window_ms`` milliseconds. The window starts with the first request
    for a key and does not slide.

    Business Rules:
    - Window duration must be positive
    - Request limit must be positive
    """
    window_ms: int
    max_requests: int
    name: str = "default"

    def __post_init__(self):
        """Validate quota parameters at construction time"""
        if self.window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000

    def __str__(self) -> str:
        return f"{self.name}: {self.max_requests} per {self.window_ms}ms"


@dataclass(frozen=True, slots=True)
class RateLimitRecord:
    """
    Counter state for a single key.

    A record whose ``window_reset_at`` lies in the past is logically expired
    and must be treated as absent by every reader.
    """
    key: str
    count: int
    window_reset_at: int

    def __post_init__(self):
        if self.count < 0:
            raise ValueError("count cannot be negative")

    def is_expired(self, now: int) -> bool:
        return now > self.window_reset_at

    def incremented(self) -> RateLimitRecord:
        return RateLimitRecord(self.key, self.count + 1, self.window_reset_at)
