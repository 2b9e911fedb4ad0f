"""Caller identification for rate limiting.

Requests are counted per client IP. Behind a reverse proxy the peer address
is the proxy's, so the proxy-supplied headers take precedence.
"""

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Return the best-effort client IP for ``request``.

    Order: first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    literal ``"unknown"``. The socket peer is deliberately ignored so that all
    instances behind the same proxy derive the same key.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return UNKNOWN_CLIENT


def rate_limit_key(policy_name: str, request: Request) -> str:
    """Build the counter key ``"<policy name>:<client ip>"``."""
    return f"{policy_name}:{get_client_ip(request)}"
