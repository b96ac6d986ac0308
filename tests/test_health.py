"""Smoke tests for health and app wiring."""

from httpx import AsyncClient

from hse_portal.infrastructure.memory import InMemoryDocumentStore
from hse_portal.main import app


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data.get("status") == "ok"


async def test_ready_reports_missing_store(client: AsyncClient) -> None:
    """GET /api/v1/health/ready returns 503 until the lifespan created the store."""
    app.state.document_store = None
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


async def test_ready_with_store(client: AsyncClient, seeded_store: InMemoryDocumentStore) -> None:
    app.state.document_store = seeded_store
    try:
        response = await client.get("/api/v1/health/ready")
    finally:
        app.state.document_store = None
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database_backend": "memory"}


async def test_unknown_route_returns_json_404(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json()["error"] == "HTTP_ERROR"


async def test_request_id_is_forwarded_when_safe(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "abc-123_x"})
    assert response.headers["X-Request-ID"] == "abc-123_x"


async def test_unsafe_request_id_is_replaced(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "bad id; forged"})
    request_id = response.headers["X-Request-ID"]
    assert request_id and request_id != "bad id; forged"
    assert " " not in request_id


async def test_error_bodies_carry_request_id(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nope", headers={"X-Request-ID": "trace-42"})
    assert response.json()["request_id"] == "trace-42"
