"""Request governance: rate limiting, audited execution and safe errors.

``RequestGovernor`` composes the three cross-cutting concerns around a
governed handler:

    rate-limit check -> audited handler execution -> error classification

A rejected rate-limit check raises ``RateLimitExceededError`` before the
handler runs, so it is never audited. Any failure, the rejection included,
is turned into a client-safe JSON response by ``error_response``.
"""

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from src.core.exceptions import RateLimitExceededError
from src.core.rate_limit import get_client_ip, rate_limit_key
from src.domain.rate_limiting import RateLimitDecision, RateLimiter, RateLimitPolicy
from src.domain.security.audit import AuditAction, AuditContext, AuditRecorder
from src.domain.security.error_classification import ClassifiedError, ErrorClassifier

T = TypeVar("T")


async def enforce_rate_limit(
    limiter: RateLimiter, key: str, policy: RateLimitPolicy
) -> RateLimitDecision:
    """Consume one request for ``key`` or raise when the quota is spent.

    Raises:
        RateLimitExceededError: Carries ``Retry-After`` and the window reset time
    """
    decision = await limiter.check_and_consume(key, policy)
    if not decision.admitted:
        raise RateLimitExceededError(
            retry_after=decision.retry_after_seconds(limiter.now()),
            window_reset_at=decision.window_reset_at,
        )
    return decision


def error_response(classified: ClassifiedError) -> JSONResponse:
    """Render a classified error as the outbound JSON response."""
    return JSONResponse(
        status_code=classified.http_status,
        content=classified.to_payload(),
        headers=classified.headers or None,
    )


class RequestGovernor:
    """Runs handlers under a rate-limit policy and an audit record.

    Args:
        rate_limiter: Decides admission per key and policy
        audit_recorder: Records one event per executed handler
        error_classifier: Maps failures to safe responses
        policies: Named rate limit policies available to routes
        enabled: When false, handlers run without any quota check
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        audit_recorder: AuditRecorder,
        error_classifier: ErrorClassifier,
        policies: Mapping[str, RateLimitPolicy],
        enabled: bool = True,
    ):
        self.rate_limiter = rate_limiter
        self.audit_recorder = audit_recorder
        self.error_classifier = error_classifier
        self.policies = dict(policies)
        self.enabled = enabled

    def policy(self, name: str) -> RateLimitPolicy:
        return self.policies[name]

    async def execute(
        self,
        action: AuditAction,
        handler: Callable[[], Union[T, Awaitable[T]]],
        *,
        rate_limit_key: str,
        policy: RateLimitPolicy,
        context: Optional[AuditContext] = None,
        response: Optional[Response] = None,
    ) -> T:
        """Check the quota, then run ``handler`` under an audit record.

        Raises:
            RateLimitExceededError: The quota for ``rate_limit_key`` is spent
        """
        if self.enabled:
            decision = await enforce_rate_limit(self.rate_limiter, rate_limit_key, policy)
            if response is not None:
                response.headers.update(decision.headers())
        return await self.audit_recorder.wrap(action, handler, context)

    async def handle(
        self,
        action: AuditAction,
        handler: Callable[[], Union[Any, Awaitable[Any]]],
        *,
        request: Request,
        policy_name: str,
        actor_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        response: Optional[Response] = None,
    ) -> Any:
        """Govern ``handler`` for an HTTP request.

        The rate-limit key is ``"<policy name>:<client ip>"``. Failures are
        classified and returned as a JSON response instead of propagating.
        """
        policy = self.policy(policy_name)
        caller_ip = get_client_ip(request)
        context = AuditContext(
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata=dict(metadata or {}),
            caller_ip=caller_ip,
            caller_agent=request.headers.get("user-agent"),
        )
        try:
            return await self.execute(
                action,
                handler,
                rate_limit_key=rate_limit_key(policy.name, request),
                policy=policy,
                context=context,
                response=response,
            )
        except Exception as exc:
            return error_response(self.error_classifier.classify(exc))
