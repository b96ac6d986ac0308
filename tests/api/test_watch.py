"""WebSocket watch: a fresh approval view per change, then a deletion notice."""

import asyncio

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from hse_portal.api.v1.dependencies import get_document_store
from hse_portal.infrastructure.memory import InMemoryDocumentStore
from hse_portal.main import app
from tests.factories import auth_headers, bearer_token, seed_users

FLOW = {
    "levels": [
        {"level": 1, "approvers": [{"value": "user_alice"}]},
        {"level": 2, "approvers": [{"value": "function_manager"}]},
    ],
}


@pytest.fixture
def sync_client():
    """Starlette TestClient (runs the lifespan) over a seeded in-memory store."""
    store = InMemoryDocumentStore()
    asyncio.run(seed_users(store))
    app.dependency_overrides[get_document_store] = lambda: store
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_document_store, None)


def test_watch_streams_views_until_withdrawn(sync_client: TestClient) -> None:
    admin = auth_headers("alice", roles=["admin"])
    assert sync_client.put("/api/v1/flows/access", headers=admin, json=FLOW).status_code == 200
    submitted = sync_client.post(
        "/api/v1/requests/access", headers=auth_headers("dave"), json={"id": "req-ws"}
    )
    assert submitted.status_code == 201

    url = f"/api/v1/requests/access/req-ws/watch?token={bearer_token('bob')}"
    with sync_client.websocket_connect(url) as ws:
        first = ws.receive_json()
        assert first["request"]["id"] == "req-ws"
        assert first["can_act"] is False
        assert [lv["status"] for lv in first["levels"]] == ["pending", "locked"]

        approved = sync_client.post(
            "/api/v1/requests/access/req-ws/actions",
            headers=auth_headers("alice"),
            json={"decision": "approve"},
        )
        assert approved.status_code == 200

        second = ws.receive_json()
        assert second["actionable_levels"] == [2]
        assert [lv["status"] for lv in second["levels"]] == ["approved", "pending"]

        withdrawn = sync_client.delete(
            "/api/v1/requests/access/req-ws", headers=auth_headers("dave")
        )
        assert withdrawn.status_code == 204
        assert ws.receive_json() == {"request_id": "req-ws", "deleted": True}


@pytest.mark.parametrize("query", ["", "?token=not-a-jwt"])
def test_watch_without_valid_token_is_closed(sync_client: TestClient, query: str) -> None:
    with sync_client.websocket_connect(f"/api/v1/requests/access/req-ws/watch{query}") as ws:
        with pytest.raises(WebSocketDisconnect) as excinfo:
            ws.receive_json()
    assert excinfo.value.code == 1008
