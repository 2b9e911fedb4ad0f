"""Infrastructure implementations of domain repositories."""

from .redis_counter_store import RedisCounterStore

__all__ = ["RedisCounterStore"]
