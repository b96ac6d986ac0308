"""Flow API tests: read, administrator-only replace, validation."""

from httpx import AsyncClient

from tests.factories import auth_headers

ADMIN = auth_headers("alice", roles=["admin"])

SEQUENTIAL_BODY = {
    "approval_order": "sequential",
    "due_days": 2,
    "levels": [
        {"level": 1, "approvers": [{"value": "user_alice", "text": "Supervisor"}]},
        {"level": 2, "approvers": [{"value": "function_manager", "text": "Manager"}, {"value": "L+1"}]},
    ],
}


async def test_get_requires_authentication(client: AsyncClient) -> None:
    response = await client.get("/api/v1/flows/access", headers={"X-Tenant-ID": "acme"})
    assert response.status_code == 401


async def test_get_requires_tenant_header(client: AsyncClient) -> None:
    headers = auth_headers("dave")
    del headers["X-Tenant-ID"]
    response = await client.get("/api/v1/flows/access", headers=headers)
    assert response.status_code == 400


async def test_token_for_another_tenant_is_forbidden(client: AsyncClient) -> None:
    headers = auth_headers("mallory", tenant_id="other-tenant", header_tenant_id="acme")
    response = await client.get("/api/v1/flows/access", headers=headers)
    assert response.status_code == 403


async def test_inactive_or_unknown_user_is_unauthenticated(client: AsyncClient) -> None:
    for user_id in ("erin", "ghost"):
        response = await client.get("/api/v1/flows/access", headers=auth_headers(user_id))
        assert response.status_code == 401


async def test_unconfigured_flow(client: AsyncClient) -> None:
    response = await client.get("/api/v1/flows/access", headers=auth_headers("dave"))
    assert response.status_code == 200
    assert response.json() == {
        "process_type": "access",
        "configured": False,
        "approval_order": None,
        "completion_rule": None,
        "due_days": None,
        "levels": [],
    }


async def test_only_admin_may_replace_flow(client: AsyncClient) -> None:
    response = await client.put(
        "/api/v1/flows/access", headers=auth_headers("bob"), json=SEQUENTIAL_BODY
    )
    assert response.status_code == 403


async def test_admin_replaces_flow_and_reads_it_back(client: AsyncClient) -> None:
    response = await client.put("/api/v1/flows/access", headers=ADMIN, json=SEQUENTIAL_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["configured"] is True
    assert data["approval_order"] == "sequential"
    assert data["completion_rule"] == "all"
    assert data["due_days"] == 2
    assert data["levels"][1]["approvers"] == [
        {"value": "function_manager", "text": "Manager"},
        {"value": "L+1", "text": "Level +1 Approver"},
    ]

    read = await client.get("/api/v1/flows/access", headers=auth_headers("dave"))
    assert read.json() == data


async def test_disabled_flow_reads_as_not_configured(client: AsyncClient) -> None:
    body = {**SEQUENTIAL_BODY, "enabled": False}
    response = await client.put("/api/v1/flows/fleet", headers=ADMIN, json=body)
    assert response.status_code == 200
    assert response.json()["configured"] is False

    read = await client.get("/api/v1/flows/fleet", headers=ADMIN)
    assert read.json()["configured"] is False


async def test_unknown_role_encoding_is_rejected(client: AsyncClient) -> None:
    body = {"levels": [{"level": 1, "approvers": [{"value": "manager"}]}]}
    response = await client.put("/api/v1/flows/access", headers=ADMIN, json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_level_gap_is_rejected(client: AsyncClient) -> None:
    body = {
        "levels": [
            {"level": 1, "approvers": [{"value": "user_alice"}]},
            {"level": 3, "approvers": [{"value": "user_bob"}]},
        ]
    }
    response = await client.put("/api/v1/flows/access", headers=ADMIN, json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_FLOW_DEFINITION"


async def test_level_without_approvers_fails_validation(client: AsyncClient) -> None:
    body = {"levels": [{"level": 1, "approvers": []}]}
    response = await client.put("/api/v1/flows/access", headers=ADMIN, json=body)
    assert response.status_code == 422
