import pytest

from rapport.domain.errors import ValidationFailed
from rapport.domain.profiles.access import ProfileNotFound
from rapport.domain.profiles.models import AccessLevel, PREVIEW_FIELDS


@pytest.mark.asyncio
async def test_own_profile_includes_phone(container, make_profile):
    await make_profile("alice", "Alice", phone="+1555000", profession="Engineer")

    view = await container.access.resolve("alice", "alice")

    assert view.access_level == AccessLevel.OWN
    assert view.profile["phone"] == "+1555000"
    assert view.mutual_count == 0
    assert view.mutual_friends == []


@pytest.mark.asyncio
async def test_connected_viewer_sees_everything_but_phone(container, befriend, make_profile):
    await make_profile("alice", "Alice", phone="+1555000", college="MIT", skills=["go"])
    await befriend("alice", "bob")

    view = await container.access.resolve("bob", "alice")

    assert view.access_level == AccessLevel.CONNECTED
    assert "phone" not in view.profile
    assert view.profile["college"] == "MIT"
    assert view.profile["skills"] == ["go"]


@pytest.mark.asyncio
async def test_stranger_gets_preview_fields_only(container, make_profile):
    await make_profile("alice", "Alice", phone="+1555000", college="MIT", bio="hi")
    await make_profile("bob")

    view = await container.access.resolve("bob", "alice")

    assert view.access_level == AccessLevel.PREVIEW
    assert set(view.profile) == set(PREVIEW_FIELDS)
    assert view.profile["bio"] == "hi"


@pytest.mark.asyncio
async def test_blocked_friend_falls_back_to_preview(container, befriend):
    friendship = await befriend("alice", "bob")
    await container.friends.block(friendship.id, "alice")

    view = await container.access.resolve("bob", "alice")

    assert view.access_level == AccessLevel.PREVIEW


@pytest.mark.asyncio
async def test_mutual_connections_are_counted_and_previewed(container, befriend, make_profile):
    for user_id in ("alice", "bob", "m1", "m2", "m3", "m4"):
        await make_profile(user_id)
    for mutual in ("m1", "m2", "m3", "m4"):
        await befriend("alice", mutual)
        await befriend(mutual, "bob")

    view = await container.access.resolve("alice", "bob")

    assert view.mutual_count == 4
    assert [m.user_id for m in view.mutual_friends] == ["m1", "m2", "m3"]
    assert view.mutual_friends[0].name == "M1"


@pytest.mark.asyncio
async def test_mutual_lookup_failure_still_returns_profile(container, make_profile, monkeypatch):
    await make_profile("alice")
    await make_profile("bob")

    async def broken(user_id, *, include_blocked=False):
        raise RuntimeError("store down")

    monkeypatch.setattr(container.relationships, "list_friendships", broken)

    view = await container.access.resolve("alice", "bob")

    assert view.access_level == AccessLevel.PREVIEW
    assert view.mutual_count == 0


@pytest.mark.asyncio
async def test_missing_profile(container):
    with pytest.raises(ProfileNotFound):
        await container.access.resolve("alice", "ghost")


@pytest.mark.asyncio
async def test_friendship_change_is_visible_immediately(container, befriend, make_profile):
    await make_profile("alice")
    await make_profile("bob")
    first = await container.access.resolve("bob", "alice")
    assert first.access_level == AccessLevel.PREVIEW

    friendship = await befriend("alice", "bob")
    connected = await container.access.resolve("bob", "alice")
    assert connected.access_level == AccessLevel.CONNECTED

    await container.friends.remove(friendship.id, "bob")
    removed = await container.access.resolve("bob", "alice")
    assert removed.access_level == AccessLevel.PREVIEW


@pytest.mark.asyncio
async def test_profile_update_invalidates_cache(container, make_profile):
    await make_profile("alice", "Alice", bio="old")
    await container.access.resolve("bob", "alice")
    assert await container.cache.get_profile("alice") is not None

    await container.access.update_profile("alice", {"bio": "new"})

    assert await container.cache.get_profile("alice") is None
    view = await container.access.resolve("bob", "alice")
    assert view.profile["bio"] == "new"


@pytest.mark.asyncio
async def test_profile_update_rejects_unknown_fields(container, make_profile):
    await make_profile("alice")
    with pytest.raises(ValidationFailed):
        await container.access.update_profile("alice", {"verified": True})
    with pytest.raises(ProfileNotFound):
        await container.access.update_profile("ghost", {"bio": "x"})


@pytest.mark.asyncio
async def test_repeat_views_are_served_from_cache(container, befriend, monkeypatch):
    await befriend("alice", "bob")
    first = await container.access.resolve("bob", "alice")
    assert await container.cache.get_friendship_exists("alice", "bob") is True

    async def store_unavailable(*args, **kwargs):
        raise AssertionError("store should not be read on a cache hit")

    monkeypatch.setattr(container.profiles, "get", store_unavailable)
    monkeypatch.setattr(container.relationships, "find_friendship", store_unavailable)

    second = await container.access.resolve("bob", "alice")

    assert second.access_level == AccessLevel.CONNECTED == first.access_level
    assert second.profile == first.profile
