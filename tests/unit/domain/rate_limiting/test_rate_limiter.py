"""Tests for the fixed-window RateLimiter service."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.domain.rate_limiting import (
    CounterStore,
    CounterStoreUnavailableError,
    InMemoryCounterStore,
    RateLimiter,
    RateLimitPolicy,
)


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCounterStore()


@pytest.fixture
def limiter(store, clock):
    return RateLimiter(store, sweep_probability=0.0, clock=clock)


class TestCheckAndConsume:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_quota_sequence(self, limiter, clock):
        """Five attempts per minute: the sixth is rejected until the window ends."""
        policy = RateLimitPolicy(window_ms=60_000, max_requests=5, name="auth")

        remaining = []
        for _ in range(5):
            decision = await limiter.check_and_consume("auth:10.0.0.1", policy)
            assert decision.admitted
            remaining.append(decision.remaining)

        rejected = await limiter.check_and_consume("auth:10.0.0.1", policy)

        assert remaining == [4, 3, 2, 1, 0]
        assert not rejected.admitted
        assert rejected.remaining == 0
        assert rejected.window_reset_at == clock.now + 60_000
        assert rejected.retry_after_seconds(clock.now) == 60

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_new_window_after_reset(self, limiter, clock):
        policy = RateLimitPolicy(window_ms=1_000, max_requests=1)

        assert (await limiter.check_and_consume("k", policy)).admitted
        assert not (await limiter.check_and_consume("k", policy)).admitted

        clock.advance(1_001)

        decision = await limiter.check_and_consume("k", policy)
        assert decision.admitted
        assert decision.window_reset_at == clock.now + 1_000

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_calls_admit_exactly_the_limit(self, limiter):
        policy = RateLimitPolicy(window_ms=60_000, max_requests=5)

        decisions = await asyncio.gather(
            *(limiter.check_and_consume("burst", policy) for _ in range(20))
        )

        assert sum(d.admitted for d in decisions) == 5

    @pytest.mark.unit
    def test_invalid_sweep_probability(self, store):
        with pytest.raises(ValueError):
            RateLimiter(store, sweep_probability=1.5)


class TestSweep:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sweep_runs_when_draw_is_below_probability(self, store, clock):
        limiter = RateLimiter(store, sweep_probability=0.01, clock=clock, rng=lambda: 0.005)
        policy = RateLimitPolicy(window_ms=1_000, max_requests=5)
        await store.consume("stale", policy, now=clock.now - 10_000)

        await limiter.check_and_consume("fresh", policy)

        assert len(store) == 1
        assert await store.get("fresh", now=clock.now) is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sweep_skipped_when_draw_is_above_probability(self, store, clock):
        limiter = RateLimiter(store, sweep_probability=0.01, clock=clock, rng=lambda: 0.5)
        policy = RateLimitPolicy(window_ms=1_000, max_requests=5)
        await store.consume("stale", policy, now=clock.now - 10_000)

        await limiter.check_and_consume("fresh", policy)

        assert len(store) == 2


class TestStoreFailure:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falls_back_to_memory_when_store_is_unavailable(self, clock):
        broken = AsyncMock(spec=CounterStore)
        broken.consume.side_effect = CounterStoreUnavailableError("connection refused")
        fallback = InMemoryCounterStore()
        limiter = RateLimiter(broken, sweep_probability=0.0, clock=clock, fallback_store=fallback)
        policy = RateLimitPolicy(window_ms=60_000, max_requests=1)

        first = await limiter.check_and_consume("k", policy)
        second = await limiter.check_and_consume("k", policy)

        assert first.admitted
        assert not second.admitted
        assert len(fallback) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sweep_failure_does_not_block_the_check(self, clock):
        store = AsyncMock(spec=CounterStore)
        store.sweep.side_effect = CounterStoreUnavailableError("timeout")
        fallback = InMemoryCounterStore()
        store.consume.side_effect = CounterStoreUnavailableError("timeout")
        limiter = RateLimiter(store, sweep_probability=1.0, clock=clock, fallback_store=fallback)

        decision = await limiter.check_and_consume("k", RateLimitPolicy(60_000, 2))

        assert decision.admitted
        store.sweep.assert_awaited_once_with(clock.now)
