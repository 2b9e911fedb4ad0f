"""Dependency providers for the request-governance components.

Each provider builds its component once per process from ``settings``; the
same instances are shared by route dependencies, exception handlers and the
lifespan manager. Tests replace them through ``app.dependency_overrides`` or
by clearing the caches.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request, Response
from structlog import get_logger

from src.core.config.settings import settings
from src.core.governance import RequestGovernor, enforce_rate_limit
from src.core.rate_limit import rate_limit_key
from src.core.rate_limiting.config import RateLimitingConfig
from src.domain.rate_limiting import CounterStore, InMemoryCounterStore, RateLimiter
from src.domain.security.audit import AuditRecorder, StreamAuditSink
from src.domain.security.error_classification import ErrorClassifier
from src.infrastructure.redis import create_redis_client
from src.infrastructure.repositories import RedisCounterStore

__all__ = [
    "get_counter_store",
    "get_rate_limiter",
    "get_rate_limiting_config",
    "get_error_classifier",
    "get_audit_recorder",
    "get_request_governor",
    "get_current_principal",
    "rate_limit",
    "reset_governance_dependencies",
]

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component providers
# ---------------------------------------------------------------------------


@lru_cache
def get_counter_store() -> CounterStore:
    """Return the counter store selected by ``RATE_LIMIT_BACKEND``."""
    if settings.RATE_LIMIT_BACKEND == "redis":
        client = create_redis_client(settings.REDIS_URL)
        logger.info("rate_limit_backend_selected", backend="redis")
        return RedisCounterStore(client, key_prefix=settings.RATE_LIMIT_KEY_PREFIX)
    logger.info("rate_limit_backend_selected", backend="memory")
    return InMemoryCounterStore()


@lru_cache
def get_rate_limiter() -> RateLimiter:
    return RateLimiter(
        get_counter_store(),
        sweep_probability=settings.RATE_LIMIT_SWEEP_PROBABILITY,
    )


@lru_cache
def get_rate_limiting_config() -> RateLimitingConfig:
    return RateLimitingConfig()


@lru_cache
def get_error_classifier() -> ErrorClassifier:
    return ErrorClassifier(settings.runtime_mode)


@lru_cache
def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(StreamAuditSink(settings.runtime_mode))


@lru_cache
def get_request_governor() -> RequestGovernor:
    return RequestGovernor(
        rate_limiter=get_rate_limiter(),
        audit_recorder=get_audit_recorder(),
        error_classifier=get_error_classifier(),
        policies=get_rate_limiting_config().policies(),
        enabled=settings.RATE_LIMIT_ENABLED,
    )


def reset_governance_dependencies() -> None:
    """Drop every cached component so the next call rebuilds it."""
    for provider in (
        get_counter_store,
        get_rate_limiter,
        get_rate_limiting_config,
        get_error_classifier,
        get_audit_recorder,
        get_request_governor,
    ):
        provider.cache_clear()


# ---------------------------------------------------------------------------
# Request-scoped dependencies
# ---------------------------------------------------------------------------


def get_current_principal(request: Request) -> Optional[str]:
    """Return the verified principal id set by the authentication layer.

    Authentication itself happens upstream; it stores the principal on
    ``request.state.principal_id``. ``None`` means the caller is anonymous.
    """
    principal = getattr(request.state, "principal_id", None)
    return str(principal) if principal else None


def rate_limit(policy_name: str) -> Callable[..., Awaitable[None]]:
    """Return a FastAPI dependency enforcing the named policy.

    Admitted requests get ``X-RateLimit-*`` headers on the response; a spent
    quota raises ``RateLimitExceededError``, which the exception handlers
    render as ``429``.

    Args:
        policy_name: Name of a policy in ``RateLimitingConfig``
    """

    async def _dependency(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
        config: RateLimitingConfig = Depends(get_rate_limiting_config),
    ) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        policy = config.policy(policy_name)
        decision = await enforce_rate_limit(limiter, rate_limit_key(policy.name, request), policy)
        response.headers.update(decision.headers())

    return _dependency
