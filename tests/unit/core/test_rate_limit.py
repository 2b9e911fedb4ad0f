"""Tests for caller identification and the rate limit route dependency."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from src.core.config.settings import settings
from src.core.dependencies.governance import get_rate_limiter, rate_limit
from src.core.handlers import register_exception_handlers
from src.core.rate_limit import get_client_ip, rate_limit_key
from src.domain.rate_limiting import InMemoryCounterStore, RateLimiter


def make_request(headers):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(name.lower().encode(), value.encode()) for name, value in headers.items()],
        "client": ("10.9.9.9", 50000),
    }
    return Request(scope)


class TestGetClientIp:
    @pytest.mark.unit
    def test_first_forwarded_for_entry_wins(self):
        request = make_request(
            {"X-Forwarded-For": " 203.0.113.5 , 10.0.0.1", "X-Real-IP": "198.51.100.2"}
        )

        assert get_client_ip(request) == "203.0.113.5"

    @pytest.mark.unit
    def test_real_ip_fallback(self):
        assert get_client_ip(make_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"

    @pytest.mark.unit
    def test_unknown_without_proxy_headers(self):
        assert get_client_ip(make_request({})) == "unknown"

    @pytest.mark.unit
    def test_key_combines_policy_and_ip(self):
        request = make_request({"X-Real-IP": "198.51.100.2"})

        assert rate_limit_key("auth", request) == "auth:198.51.100.2"


@pytest.fixture
def limited_app():
    app = FastAPI()
    register_exception_handlers(app)
    limiter = RateLimiter(InMemoryCounterStore(), sweep_probability=0.0)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    @app.post("/login", dependencies=[Depends(rate_limit("auth"))])
    async def login():
        return {"ok": True}

    return app


class TestRateLimitDependency:
    @pytest.mark.unit
    def test_sixth_login_attempt_is_rejected(self, limited_app):
        client = TestClient(limited_app)
        headers = {"X-Forwarded-For": "203.0.113.5"}

        responses = [client.post("/login", headers=headers) for _ in range(6)]

        assert [r.status_code for r in responses] == [200] * 5 + [429]
        assert responses[0].headers["X-RateLimit-Limit"] == "5"
        assert responses[0].headers["X-RateLimit-Remaining"] == "4"
        assert responses[4].headers["X-RateLimit-Remaining"] == "0"

        rejected = responses[5]
        assert rejected.json() == {
            "error": "Too many requests. Please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        }
        assert rejected.headers["X-RateLimit-Remaining"] == "0"
        assert 0 < int(rejected.headers["Retry-After"]) <= 60
        assert rejected.headers["X-RateLimit-Reset"] == responses[0].headers["X-RateLimit-Reset"]

    @pytest.mark.unit
    def test_other_clients_keep_their_quota(self, limited_app):
        client = TestClient(limited_app)
        for _ in range(5):
            client.post("/login", headers={"X-Forwarded-For": "203.0.113.5"})

        response = client.post("/login", headers={"X-Forwarded-For": "203.0.113.6"})

        assert response.status_code == 200

    @pytest.mark.unit
    def test_disabled_rate_limiting(self, limited_app, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
        client = TestClient(limited_app)

        responses = [client.post("/login") for _ in range(7)]

        assert all(r.status_code == 200 for r in responses)
        assert "X-RateLimit-Limit" not in responses[0].headers
