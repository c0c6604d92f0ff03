import pytest


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_list_friends(api_client, befriend, make_profile):
    await make_profile("bob", "Bob", place="Montreal")
    friendship = await befriend("alice", "bob")

    response = await api_client.get("/friends", headers=_as("alice"))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    friend = body["friends"][0]
    assert friend["friendshipId"] == friendship.id
    assert friend["friendId"] == "bob"
    assert friend["place"] == "Montreal"
    assert friend["communicationLevel"] == "chat"


@pytest.mark.asyncio
async def test_friend_list_of_stranger_is_forbidden(api_client, befriend, make_profile):
    await befriend("alice", "bob")
    await make_profile("mallory")

    allowed = await api_client.get("/friends/user/bob", headers=_as("alice"))
    assert allowed.status_code == 200
    assert allowed.json()["friends"][0]["friendId"] == "alice"

    denied = await api_client.get("/friends/user/bob", headers=_as("mallory"))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_block_and_unblock(api_client, befriend):
    friendship = await befriend("alice", "bob")

    blocked = await api_client.post(f"/friendships/{friendship.id}/block", headers=_as("alice"))
    assert blocked.status_code == 200
    assert blocked.json()["friendship"]["blocked"] is True

    listing = await api_client.get("/friends", headers=_as("bob"))
    assert listing.json()["total"] == 0

    denied = await api_client.post(f"/friendships/{friendship.id}/unblock", headers=_as("bob"))
    assert denied.status_code == 403

    unblocked = await api_client.post(f"/friendships/{friendship.id}/unblock", headers=_as("alice"))
    assert unblocked.status_code == 200
    assert unblocked.json()["friendship"]["blocked"] is False


@pytest.mark.asyncio
async def test_remove_friendship(api_client, befriend):
    friendship = await befriend("alice", "bob")

    outsider = await api_client.delete(f"/friendships/{friendship.id}", headers=_as("mallory"))
    assert outsider.status_code == 403

    removed = await api_client.delete(f"/friendships/{friendship.id}", headers=_as("bob"))
    assert removed.status_code == 200
    assert removed.json()["message"] == "Friend removed successfully"

    gone = await api_client.delete(f"/friendships/{friendship.id}", headers=_as("bob"))
    assert gone.status_code == 404
    assert gone.json()["error"]["code"] == "FRIENDSHIP_NOT_FOUND"


@pytest.mark.asyncio
async def test_remove_by_user(api_client, befriend):
    await befriend("alice", "bob")

    removed = await api_client.delete("/friends/by-user/alice", headers=_as("bob"))
    assert removed.status_code == 200

    listing = await api_client.get("/friends", headers=_as("alice"))
    assert listing.json()["total"] == 0
