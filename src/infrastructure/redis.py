"""
Redis Connection Module

This module provides the asynchronous Redis client backing the distributed
rate limiting counter store.

**Security Note**: Ensure that the Redis connection URL (REDIS_URL) uses rediss:// if
connecting over an insecure network to prevent data interception (OWASP A02:2021 - Cryptographic
Failures). Avoid logging connection details (e.g., passwords) to prevent information disclosure
(OWASP A09:2021 - Security Logging and Monitoring Failures).

Functions:
    create_redis_client: Builds a long-lived asynchronous Redis client from a URL.
"""

from redis.asyncio import Redis
import structlog

from src.utils.security import mask_secret

logger = structlog.get_logger(__name__)


def create_redis_client(url: str) -> Redis:
    """
    Create an asynchronous Redis client.

    The client owns a connection pool and is meant to live for the whole
    process; close it with ``await client.aclose()`` on shutdown.

    Args:
        url: A redis:// or rediss:// connection URL.

    Returns:
        Redis: An asynchronous Redis client instance.
    """
    client = Redis.from_url(url, encoding="utf-8", decode_responses=True)
    logger.info("redis_client_created", url=mask_secret(url))
    return client
