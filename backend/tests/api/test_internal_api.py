import pytest

SERVICE = {"X-User-Id": "svc-chat", "X-User-Roles": "service"}


@pytest.mark.asyncio
async def test_record_interactions_moves_level_to_voice(api_client, befriend):
    await befriend("alice", "bob")

    first = await api_client.post("/internal/interactions", json={"userId": "alice", "friendId": "bob"}, headers=SERVICE)
    assert first.status_code == 200
    assert first.json()["interactionCount"] == 1
    assert first.json()["communicationLevel"] == "chat"

    second = await api_client.post("/internal/interactions", json={"userId": "bob", "friendId": "alice"}, headers=SERVICE)
    assert second.json()["interactionCount"] == 2
    assert second.json()["communicationLevel"] == "voice"


@pytest.mark.asyncio
async def test_internal_routes_require_role(api_client, befriend):
    await befriend("alice", "bob")

    response = await api_client.post(
        "/internal/interactions",
        json={"userId": "alice", "friendId": "bob"},
        headers={"X-User-Id": "alice"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_interaction_without_friendship(api_client):
    response = await api_client.post(
        "/internal/interactions",
        json={"userId": "alice", "friendId": "bob"},
        headers=SERVICE,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reconcile_reports_cascade(api_client, befriend, make_premium):
    await befriend("alice", "bob")
    await make_premium("alice")

    response = await api_client.post(
        "/internal/subscriptions/alice/reconcile",
        headers={"X-User-Id": "ops", "X-User-Roles": "admin"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "kind": "activated",
        "userId": "alice",
        "scanned": 1,
        "updated": 0,
        "skipped": 1,
        "failed": 0,
    }
