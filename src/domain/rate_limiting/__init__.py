"""Rate Limiting Domain Module

This module contains the domain model for fixed-window rate limiting:

- Value Objects: RateLimitPolicy, RateLimitRecord
- Entities: RateLimitDecision
- Repositories: CounterStore contract and the in-memory backend
- Domain Services: RateLimiter
"""

from .entities import RateLimitDecision
from .repositories import (
    CounterStore,
    CounterStoreError,
    CounterStoreUnavailableError,
    InMemoryCounterStore,
)
from .services import RateLimiter
from .value_objects import RateLimitPolicy, RateLimitRecord, now_ms

__all__ = [
    "RateLimitPolicy",
    "RateLimitRecord",
    "RateLimitDecision",
    "CounterStore",
    "CounterStoreError",
    "CounterStoreUnavailableError",
    "InMemoryCounterStore",
    "RateLimiter",
    "now_ms",
]
