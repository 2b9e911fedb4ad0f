"""
Rate Limiting Domain Repositories

The counter store is the only shared mutable state of the governance layer.
It maps a rate limiting key to a ``RateLimitRecord`` and is mutated
exclusively through ``consume``, which performs the read-then-maybe-write
sequence as one atomic unit per key.

Repositories:
- CounterStore: Contract implemented by every backend
- InMemoryCounterStore: Process-local backend for single-node deployments

The Redis backend for multi-process deployments lives in
``src.infrastructure.repositories.redis_counter_store``.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .entities import RateLimitDecision
from .value_objects import RateLimitPolicy, RateLimitRecord


class CounterStoreError(Exception):
    """Base exception for counter store operations"""
    pass


class CounterStoreUnavailableError(CounterStoreError):
    """Exception raised when the backing store cannot be reached"""
    pass


class CounterStore(ABC):
    """
    Repository interface for fixed-window request counters.

    Implementations must make ``consume`` atomic per key: two concurrent
    calls for the same key may never both observe the same count.
    """

    @abstractmethod
    async def consume(self, key: str, policy: RateLimitPolicy, now: int) -> RateLimitDecision:
        """
        Count one request for ``key`` against ``policy``.

        Args:
            key: The rate limiting key (caller identity plus policy class)
            policy: The quota to enforce
            now: Current time in epoch milliseconds

        Returns:
            The admission decision for this request

        Raises:
            CounterStoreUnavailableError: When the backing store is unreachable
        """
        pass

    @abstractmethod
    async def get(self, key: str, now: int) -> Optional[RateLimitRecord]:
        """
        Return the live record for ``key``, or None when absent or expired.
        """
        pass

    @abstractmethod
    async def sweep(self, now: int) -> int:
        """
        Remove records whose window has passed.

        Returns:
            Number of records removed
        """
        pass

    @abstractmethod
    async def reset(self, key: str) -> bool:
        """
        Forget the record for ``key``.

        Returns:
            True if a record was removed
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Report the status of the backing store.
        """
        pass

    async def close(self) -> None:
        """Release connections held by the store."""
        return None


class InMemoryCounterStore(CounterStore):
    """
    Process-local counter store.

    Suitable for a single process only: every worker keeps its own counters,
    so a deployment with N workers effectively multiplies each quota by N.
    A lock guards the check-and-increment sequence because synchronous
    FastAPI dependencies run in a thread pool.
    """

    def __init__(self):
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()

    async def consume(self, key: str, policy: RateLimitPolicy, now: int) -> RateLimitDecision:
        with self._lock:
            record = self._records.get(key)

            if record is None or record.is_expired(now):
                record = RateLimitRecord(key=key, count=1, window_reset_at=now + policy.window_ms)
                self._records[key] = record
                return RateLimitDecision.admit(
                    remaining=policy.max_requests - 1,
                    window_reset_at=record.window_reset_at,
                    limit=policy.max_requests,
                )

            if record.count >= policy.max_requests:
                return RateLimitDecision.reject(
                    window_reset_at=record.window_reset_at, limit=policy.max_requests
                )

            record = record.incremented()
            self._records[key] = record
            return RateLimitDecision.admit(
                remaining=policy.max_requests - record.count,
                window_reset_at=record.window_reset_at,
                limit=policy.max_requests,
            )

    async def get(self, key: str, now: int) -> Optional[RateLimitRecord]:
        with self._lock:
            record = self._records.get(key)
        if record is None or record.is_expired(now):
            return None
        return record

    async def sweep(self, now: int) -> int:
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)

    async def reset(self, key: str) -> bool:
        with self._lock:
            return self._records.pop(key, None) is not None

    async def health_check(self) -> Dict[str, Any]:
        with self._lock:
            tracked = len(self._records)
        return {"status": "healthy", "backend": "memory", "tracked_keys": tracked}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
