"""Redis-backed counter store for multi-process deployments.

The whole check-and-increment sequence runs inside a Lua script, so it is
atomic across every process and node sharing the Redis instance. Redis
expires each key shortly after its window ends, which makes ``sweep`` a
no-op.
"""

from typing import Any, Dict, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.domain.rate_limiting.entities import RateLimitDecision
from src.domain.rate_limiting.repositories import CounterStore, CounterStoreUnavailableError
from src.domain.rate_limiting.value_objects import RateLimitPolicy, RateLimitRecord

logger = structlog.get_logger(__name__)

# KEYS[1] = counter hash; ARGV = now, window_ms, max_requests
# Returns {admitted, count, window_reset_at}
_CONSUME_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local reset_at = tonumber(redis.call('HGET', key, 'reset_at'))
if reset_at == nil or now > reset_at then
    reset_at = now + window
    redis.call('HSET', key, 'count', 1, 'reset_at', reset_at)
    redis.call('PEXPIREAT', key, reset_at + 1000)
    return {1, 1, reset_at}
end
local count = tonumber(redis.call('HGET', key, 'count'))
if count >= limit then
    return {0, count, reset_at}
end
count = redis.call('HINCRBY', key, 'count', 1)
return {1, count, reset_at}
"""


class RedisCounterStore(CounterStore):
    """
    A concrete implementation of CounterStore using Redis hashes.

    Each key maps to a hash ``{count, reset_at}`` under ``<prefix>:<key>``.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "ratelimit"):
        """
        Args:
            redis_client: The async Redis client instance.
            key_prefix: Namespace prepended to every counter key.
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self._consume_script = redis_client.register_script(_CONSUME_SCRIPT)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def consume(self, key: str, policy: RateLimitPolicy, now: int) -> RateLimitDecision:
        try:
            admitted, count, reset_at = await self._consume_script(
                keys=[self._key(key)],
                args=[now, policy.window_ms, policy.max_requests],
            )
        except RedisError as exc:
            raise CounterStoreUnavailableError(f"Redis counter update failed: {exc}") from exc

        admitted, count, reset_at = int(admitted), int(count), int(reset_at)
        if not admitted:
            return RateLimitDecision.reject(window_reset_at=reset_at, limit=policy.max_requests)
        return RateLimitDecision.admit(
            remaining=policy.max_requests - count,
            window_reset_at=reset_at,
            limit=policy.max_requests,
        )

    async def get(self, key: str, now: int) -> Optional[RateLimitRecord]:
        try:
            data = await self.redis.hgetall(self._key(key))
        except RedisError as exc:
            raise CounterStoreUnavailableError(f"Redis counter read failed: {exc}") from exc
        if not data:
            return None
        record = RateLimitRecord(
            key=key,
            count=int(_decode(data.get("count") or data.get(b"count"))),
            window_reset_at=int(_decode(data.get("reset_at") or data.get(b"reset_at"))),
        )
        return None if record.is_expired(now) else record

    async def sweep(self, now: int) -> int:
        # Keys carry their own expiry.
        return 0

    async def reset(self, key: str) -> bool:
        try:
            return bool(await self.redis.delete(self._key(key)))
        except RedisError as exc:
            raise CounterStoreUnavailableError(f"Redis counter reset failed: {exc}") from exc

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self.redis.ping()
        except RedisError as exc:
            logger.error("redis_health_check_failed", error=str(exc))
            return {"status": "unhealthy", "backend": "redis", "error": str(exc)}
        return {"status": "healthy", "backend": "redis"}

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("redis_client_closed")


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
