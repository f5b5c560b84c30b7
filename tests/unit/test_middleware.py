"""
Unit tests for RequestIDMiddleware and its structlog binding.
"""

from __future__ import annotations

import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from yado_booking.middleware import RequestIDMiddleware


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/context")
    async def context_endpoint(request: Request) -> dict[str, str]:
        return {
            "state": request.state.request_id,
            "log_context": structlog.contextvars.get_contextvars().get("request_id", ""),
        }

    return TestClient(app)


@pytest.mark.unit
def test_request_id_shared_by_header_state_and_log_context(client: TestClient) -> None:
    """Test that one UUID reaches the response header, request.state and the log context."""
    response = client.get("/context")

    assert response.status_code == 200
    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 36
    assert response.json() == {"state": request_id, "log_context": request_id}


@pytest.mark.unit
def test_log_context_rebound_per_request(client: TestClient) -> None:
    """Test that a second request does not inherit the first request's ID."""
    first = client.get("/context").json()["log_context"]
    second = client.get("/context").json()["log_context"]

    assert first != second
