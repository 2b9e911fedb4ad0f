"""Rate Limiting Domain Entities

Entities:
- RateLimitDecision: Result of a check-and-consume operation
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of consuming one request from a key's quota.

    Attributes:
        admitted: Whether the request may proceed.
        remaining: Requests left in the current window (0 when rejected).
        window_reset_at: Epoch milliseconds at which the window ends.
        limit: The policy's ``max_requests``.
    """

    admitted: bool
    remaining: int
    window_reset_at: int
    limit: int

    @classmethod
    def admit(cls, remaining: int, window_reset_at: int, limit: int) -> RateLimitDecision:
        return cls(admitted=True, remaining=remaining, window_reset_at=window_reset_at, limit=limit)

    @classmethod
    def reject(cls, window_reset_at: int, limit: int) -> RateLimitDecision:
        return cls(admitted=False, remaining=0, window_reset_at=window_reset_at, limit=limit)

    def retry_after_seconds(self, now: int) -> int:
        """Seconds until the window resets, rounded up."""
        return math.ceil((self.window_reset_at - now) / 1000)

    def headers(self) -> Dict[str, str]:
        """Quota headers attached to responses on rate-limited routes."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.window_reset_at),
        }
