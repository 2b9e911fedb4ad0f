import os

# Settings are read at import time; pin the environment before importing the app.
os.environ["APP_ENV"] = "test"
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi.testclient import TestClient

from src.core.dependencies.governance import (
    get_counter_store,
    get_current_principal,
    get_request_governor,
    reset_governance_dependencies,
)
from src.core.governance import RequestGovernor
from src.core.rate_limiting.config import RateLimitingConfig
from src.domain.rate_limiting import InMemoryCounterStore, RateLimiter
from src.domain.security.audit import AuditRecorder, InMemoryAuditSink
from src.domain.security.error_classification import ErrorClassifier
from src.domain.value_objects.runtime_mode import RuntimeMode
from src.main import app


@pytest.fixture
def counter_store():
    """A fresh process-local counter store."""
    return InMemoryCounterStore()


@pytest.fixture
def audit_sink():
    """Collects audit events emitted during a test."""
    return InMemoryAuditSink()


@pytest.fixture
def governor(counter_store, audit_sink):
    """Request governor with an isolated store and sink, and no random sweeps."""
    return RequestGovernor(
        rate_limiter=RateLimiter(counter_store, sweep_probability=0.0),
        audit_recorder=AuditRecorder(audit_sink),
        error_classifier=ErrorClassifier(RuntimeMode.PRODUCTION),
        policies=RateLimitingConfig().policies(),
    )


@pytest.fixture
def client(governor, counter_store):
    """Anonymous test client wired to the isolated governor."""
    app.dependency_overrides[get_request_governor] = lambda: governor
    app.dependency_overrides[get_counter_store] = lambda: counter_store
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_governance_dependencies()


@pytest.fixture
def principal_id():
    return "user-42"


@pytest.fixture
def authenticated_client(client, principal_id):
    """Test client whose requests carry a verified principal."""
    app.dependency_overrides[get_current_principal] = lambda: principal_id
    yield client
