"""Tests for rate limiting value objects and the decision entity."""

import pytest

from src.domain.rate_limiting import RateLimitDecision, RateLimitPolicy, RateLimitRecord


class TestRateLimitPolicy:
    @pytest.mark.unit
    def test_valid_policy(self):
        policy = RateLimitPolicy(window_ms=60_000, max_requests=5, name="auth")

        assert policy.window_seconds == 60
        assert str(policy) == "auth: 5 per 60000ms"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "window_ms,max_requests",
        [(0, 5), (-1, 5), (60_000, 0), (60_000, -3)],
    )
    def test_non_positive_values_are_rejected(self, window_ms, max_requests):
        with pytest.raises(ValueError):
            RateLimitPolicy(window_ms=window_ms, max_requests=max_requests)

    @pytest.mark.unit
    def test_policy_is_immutable(self):
        policy = RateLimitPolicy(window_ms=1000, max_requests=1)

        with pytest.raises(AttributeError):
            policy.max_requests = 10


class TestRateLimitRecord:
    @pytest.mark.unit
    def test_record_expires_strictly_after_reset(self):
        record = RateLimitRecord(key="k", count=3, window_reset_at=1_000)

        assert not record.is_expired(999)
        assert not record.is_expired(1_000)
        assert record.is_expired(1_001)

    @pytest.mark.unit
    def test_incremented_keeps_window(self):
        record = RateLimitRecord(key="k", count=1, window_reset_at=5_000)

        bumped = record.incremented()

        assert bumped.count == 2
        assert bumped.window_reset_at == 5_000
        assert record.count == 1

    @pytest.mark.unit
    def test_negative_count_is_rejected(self):
        with pytest.raises(ValueError):
            RateLimitRecord(key="k", count=-1, window_reset_at=0)


class TestRateLimitDecision:
    @pytest.mark.unit
    def test_retry_after_rounds_up(self):
        decision = RateLimitDecision.reject(window_reset_at=10_001, limit=5)

        assert decision.retry_after_seconds(now=1_000) == 10
        assert decision.retry_after_seconds(now=999) == 10
        assert decision.retry_after_seconds(now=998) == 11

    @pytest.mark.unit
    def test_rejection_has_no_remaining_quota(self):
        decision = RateLimitDecision.reject(window_reset_at=1, limit=5)

        assert decision.admitted is False
        assert decision.remaining == 0

    @pytest.mark.unit
    def test_headers(self):
        decision = RateLimitDecision.admit(remaining=3, window_reset_at=61_000, limit=5)

        assert decision.headers() == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "3",
            "X-RateLimit-Reset": "61000",
        }
