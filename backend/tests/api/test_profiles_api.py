import pytest


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_profile_tiers(api_client, befriend, make_profile):
    await make_profile("alice", "Alice", phone="+1555000", website_url="https://a.example", profession="Engineer")
    await make_profile("mallory")
    await befriend("alice", "bob")

    own = await api_client.get("/profiles/alice", headers=_as("alice"))
    assert own.status_code == 200
    assert own.json()["accessLevel"] == "own"
    assert own.json()["profile"]["phone"] == "+1555000"

    connected = await api_client.get("/profiles/alice", headers=_as("bob"))
    body = connected.json()
    assert body["accessLevel"] == "connected"
    assert "phone" not in body["profile"]
    assert body["profile"]["websiteUrl"] == "https://a.example"

    preview = await api_client.get("/profiles/alice", headers=_as("mallory"))
    body = preview.json()
    assert body["accessLevel"] == "preview"
    assert set(body["profile"]) == {"userId", "name", "profession", "bio", "verified"}
    assert body["mutualCount"] == 0


@pytest.mark.asyncio
async def test_profile_not_found(api_client):
    response = await api_client.get("/profiles/ghost", headers=_as("alice"))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PROFILE_NOT_FOUND"


@pytest.mark.asyncio
async def test_update_own_profile(api_client, make_profile):
    await make_profile("alice", "Alice", bio="old")
    await api_client.get("/profiles/alice", headers=_as("bob"))

    updated = await api_client.patch(
        "/profiles/me",
        json={"bio": "new bio", "skills": ["python"]},
        headers=_as("alice"),
    )
    assert updated.status_code == 200
    assert updated.json()["profile"]["bio"] == "new bio"
    assert updated.json()["profile"]["skills"] == ["python"]

    seen = await api_client.get("/profiles/alice", headers=_as("bob"))
    assert seen.json()["profile"]["bio"] == "new bio"


@pytest.mark.asyncio
async def test_update_rejects_invalid_values(api_client, make_profile):
    await make_profile("alice")

    response = await api_client.patch("/profiles/me", json={"age": 5}, headers=_as("alice"))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
