"""
Rate Limiting Domain Services

``RateLimiter`` decides admit/reject for a key against a policy using a
fixed-window counter. Bursts straddling a window boundary can briefly admit
up to twice the quota; this is an accepted approximation of the intended
average rate.
"""

import random
from typing import Callable, Optional

import structlog

from .entities import RateLimitDecision
from .repositories import CounterStore, CounterStoreError, InMemoryCounterStore
from .value_objects import RateLimitPolicy, now_ms

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Fixed-window rate limiter over an injected counter store.

    Expired records are already treated as absent on read, so the sweep only
    bounds memory growth. It runs with probability ``sweep_probability`` on
    each call rather than on a dedicated timer.

    When the primary store fails (for example Redis is unreachable) the
    limiter logs the failure and counts against a process-local fallback
    store, so a request is never rejected because of a storage outage.
    """

    def __init__(
        self,
        store: CounterStore,
        *,
        sweep_probability: float = 0.01,
        clock: Callable[[], int] = now_ms,
        rng: Callable[[], float] = random.random,
        fallback_store: Optional[CounterStore] = None,
    ):
        if not 0.0 <= sweep_probability <= 1.0:
            raise ValueError("sweep_probability must be between 0 and 1")
        self._store = store
        self._sweep_probability = sweep_probability
        self._clock = clock
        self._rng = rng
        self._fallback_store = fallback_store or InMemoryCounterStore()

    @property
    def store(self) -> CounterStore:
        return self._store

    def now(self) -> int:
        return self._clock()

    async def check_and_consume(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it is admitted.

        Args:
            key: Caller identity combined with the policy class.
            policy: Quota to enforce.

        Returns:
            RateLimitDecision: admitted flag, remaining quota and reset time.
        """
        now = self._clock()

        if self._sweep_probability and self._rng() < self._sweep_probability:
            await self._sweep(now)

        try:
            decision = await self._store.consume(key, policy, now)
        except CounterStoreError as exc:
            logger.error(
                "rate_limit_store_failed",
                key=key,
                policy=policy.name,
                error=str(exc),
            )
            decision = await self._fallback_store.consume(key, policy, now)

        if not decision.admitted:
            logger.warning(
                "rate_limit_exceeded",
                key=key,
                policy=policy.name,
                limit=policy.max_requests,
                window_reset_at=decision.window_reset_at,
            )
        return decision

    async def _sweep(self, now: int) -> None:
        try:
            removed = await self._store.sweep(now)
        except CounterStoreError as exc:
            logger.error("rate_limit_sweep_failed", error=str(exc))
            return
        if removed:
            logger.debug("rate_limit_sweep", removed=removed)
