import pytest

from rapport.domain.communication.exceptions import SubscriptionRequired
from rapport.domain.relationships.exceptions import FriendshipNotFound
from rapport.domain.relationships.models import CommunicationLevel
from rapport.domain.subscriptions.models import SubscriptionPlan


@pytest.mark.asyncio
async def test_voice_unlocked_for_any_live_friendship(container, befriend, make_profile):
    await befriend("alice", "bob")
    await make_profile("carol")

    assert await container.gate.is_voice_unlocked("alice", "bob") is True
    assert await container.gate.is_voice_unlocked("bob", "alice") is True
    assert await container.gate.is_voice_unlocked("alice", "carol") is False


@pytest.mark.asyncio
async def test_blocked_friendship_locks_everything(container, befriend, make_premium):
    friendship = await befriend("alice", "bob")
    await make_premium("alice")
    await container.friends.block(friendship.id, "bob")

    assert await container.gate.is_voice_unlocked("alice", "bob") is False
    assert await container.gate.is_video_unlocked("alice", "bob") is False


@pytest.mark.asyncio
async def test_video_requires_subscription(container, befriend, monkeypatch):
    friendship = await befriend("alice", "bob")
    writes = []
    original = container.relationships.set_level

    async def recording_set_level(*args, **kwargs):
        writes.append((args, kwargs))
        return await original(*args, **kwargs)

    monkeypatch.setattr(container.relationships, "set_level", recording_set_level)

    assert await container.gate.is_video_unlocked("alice", "bob") is False
    stored = await container.relationships.get_friendship(friendship.id)
    assert stored.communication_level == CommunicationLevel.CHAT
    assert writes == []


@pytest.mark.asyncio
async def test_video_check_upgrades_level_once(container, befriend):
    friendship = await befriend("alice", "bob")
    # Subscription recorded without running the activation cascade.
    await container.ledger.get_current("bob")
    sub = await container.subscriptions.get_by_user("bob")
    sub.plan = SubscriptionPlan.PREMIUM
    await container.subscriptions.save(sub)

    assert await container.gate.is_video_unlocked("alice", "bob") is True
    stored = await container.relationships.get_friendship(friendship.id)
    assert stored.communication_level == CommunicationLevel.VIDEO

    assert await container.gate.is_video_unlocked("bob", "alice") is True
    again = await container.relationships.get_friendship(friendship.id)
    assert again.communication_level == CommunicationLevel.VIDEO


@pytest.mark.asyncio
async def test_interactions_raise_level_to_voice_at_threshold(container, befriend):
    await befriend("alice", "bob")

    first = await container.gate.increment_interaction("alice", "bob")
    assert first.interaction_count == 1
    assert first.communication_level == CommunicationLevel.CHAT

    second = await container.gate.increment_interaction("bob", "alice")
    assert second.interaction_count == 2
    assert second.communication_level == CommunicationLevel.VOICE

    third = await container.gate.increment_interaction("alice", "bob")
    assert third.interaction_count == 3
    assert third.communication_level == CommunicationLevel.VOICE


@pytest.mark.asyncio
async def test_interactions_never_downgrade_video(container, befriend, make_premium):
    await make_premium("alice")
    await befriend("alice", "bob")

    updated = await container.gate.increment_interaction("alice", "bob")

    assert updated.communication_level == CommunicationLevel.VIDEO


@pytest.mark.asyncio
async def test_increment_without_friendship(container, befriend):
    friendship = await befriend("alice", "bob")
    with pytest.raises(FriendshipNotFound):
        await container.gate.increment_interaction("alice", "carol")

    await container.friends.block(friendship.id, "alice")
    with pytest.raises(FriendshipNotFound):
        await container.gate.increment_interaction("alice", "bob")


@pytest.mark.asyncio
async def test_unlock_video(container, befriend, make_premium):
    await befriend("alice", "bob")
    with pytest.raises(SubscriptionRequired):
        await container.gate.unlock_video("alice", "bob")
    with pytest.raises(FriendshipNotFound):
        await container.gate.unlock_video("alice", "carol")

    await make_premium("bob")
    unlocked = await container.gate.unlock_video("alice", "bob")
    assert unlocked.communication_level == CommunicationLevel.VIDEO


@pytest.mark.asyncio
async def test_capabilities_report_voice_before_level_changes(container, befriend):
    await befriend("alice", "bob")

    payload = await container.gate.capabilities("alice", "bob")

    assert payload["communication_level"] == CommunicationLevel.CHAT
    assert payload["interaction_count"] == 0
    assert payload["capabilities"] == {"chat": True, "voice": True, "video": False}


@pytest.mark.asyncio
async def test_capabilities_require_live_friendship(container, befriend):
    friendship = await befriend("alice", "bob")
    await container.friends.block(friendship.id, "alice")

    with pytest.raises(FriendshipNotFound):
        await container.gate.capabilities("alice", "bob")


@pytest.mark.asyncio
async def test_level_change_clears_cached_friendship(container, befriend, fake_redis):
    await befriend("alice", "bob")
    await container.cache.set_friendship_exists("alice", "bob", True)
    key = container.cache.friendship_key("alice", "bob")
    assert await fake_redis.get(key) is not None

    await container.gate.increment_interaction("alice", "bob")
    await container.gate.increment_interaction("alice", "bob")

    assert await fake_redis.get(key) is None


@pytest.mark.asyncio
async def test_unlock_video_ignores_blocked_friendship(container, befriend, make_premium):
    friendship = await befriend("alice", "bob")
    await container.friends.block(friendship.id, "bob")
    await make_premium("alice")

    with pytest.raises(FriendshipNotFound):
        await container.gate.unlock_video("alice", "bob")
    stored = await container.relationships.get_friendship(friendship.id)
    assert stored.communication_level == CommunicationLevel.CHAT
