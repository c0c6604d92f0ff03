import pytest


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_send_accept_flow(api_client, make_profile):
    await make_profile("alice", "Alice")
    await make_profile("bob", "Bob", profession="Designer")

    sent = await api_client.post("/connections", json={"receiverId": "bob"}, headers=_as("alice"))
    assert sent.status_code == 201
    body = sent.json()
    assert body["message"] == "Connection request sent successfully"
    request_id = body["request"]["id"]
    assert body["request"]["status"] == "pending"
    assert body["request"]["senderId"] == "alice"

    pending = await api_client.get("/connections/pending", headers=_as("bob"))
    assert pending.status_code == 200
    assert pending.json()["totalReceived"] == 1
    assert pending.json()["received"][0]["senderName"] == "Alice"

    accepted = await api_client.put(f"/connections/{request_id}/accept", headers=_as("bob"))
    assert accepted.status_code == 200
    payload = accepted.json()
    assert payload["message"] == "Connection request accepted"
    assert payload["request"]["status"] == "accepted"
    assert payload["friendship"]["communicationLevel"] == "chat"
    assert payload["friendship"]["interactionCount"] == 0


@pytest.mark.asyncio
async def test_send_validation_errors_use_envelope(api_client, make_profile):
    await make_profile("alice")

    missing = await api_client.post("/connections", json={}, headers=_as("alice"))
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "VALIDATION_ERROR"
    assert "timestamp" in missing.json()["error"]

    unknown = await api_client.post("/connections", json={"receiverId": "ghost"}, headers=_as("alice"))
    assert unknown.status_code == 404
    assert unknown.json()["error"]["code"] == "USER_NOT_FOUND"

    self_request = await api_client.post("/connections", json={"receiverId": "alice"}, headers=_as("alice"))
    assert self_request.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_request_conflicts(api_client, make_profile):
    await make_profile("alice")
    await make_profile("bob")
    await api_client.post("/connections", json={"receiverId": "bob"}, headers=_as("alice"))

    again = await api_client.post("/connections", json={"receiver_id": "bob"}, headers=_as("alice"))

    assert again.status_code == 409
    assert again.json()["error"]["code"] == "REQUEST_EXISTS"


@pytest.mark.asyncio
async def test_accept_by_sender_is_forbidden(api_client, make_profile):
    await make_profile("alice")
    await make_profile("bob")
    sent = await api_client.post("/connections", json={"receiverId": "bob"}, headers=_as("alice"))
    request_id = sent.json()["request"]["id"]

    response = await api_client.put(f"/connections/{request_id}/accept", headers=_as("alice"))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_decline_then_accept_is_invalid(api_client, make_profile):
    await make_profile("alice")
    await make_profile("bob")
    sent = await api_client.post("/connections", json={"receiverId": "bob"}, headers=_as("alice"))
    request_id = sent.json()["request"]["id"]

    declined = await api_client.put(f"/connections/{request_id}/decline", headers=_as("bob"))
    assert declined.status_code == 200
    assert declined.json()["request"]["status"] == "declined"

    accepted = await api_client.put(f"/connections/{request_id}/accept", headers=_as("bob"))
    assert accepted.status_code == 400
    assert accepted.json()["error"]["code"] == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_cancel_request(api_client, make_profile):
    await make_profile("alice")
    await make_profile("bob")
    sent = await api_client.post("/connections", json={"receiverId": "bob"}, headers=_as("alice"))
    request_id = sent.json()["request"]["id"]

    cancelled = await api_client.delete(f"/connections/{request_id}", headers=_as("alice"))
    assert cancelled.status_code == 200
    assert cancelled.json() == {
        "message": "Connection request cancelled",
        "requestId": request_id,
        "status": "cancelled",
    }

    missing = await api_client.put(f"/connections/{request_id}/accept", headers=_as("bob"))
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "REQUEST_NOT_FOUND"


@pytest.mark.asyncio
async def test_requires_authentication(api_client):
    response = await api_client.get("/connections/pending")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"
