import pytest

from rapport.domain.relationships.models import CommunicationLevel, RequestStatus
from rapport.domain.relationships.notifications import NOTIFICATION_EVENT


async def _level(container, friendship_id):
    return (await container.relationships.get_friendship(friendship_id)).communication_level


@pytest.mark.asyncio
async def test_request_to_video_and_back(container, make_profile, befriend, notifier):
    await make_profile("u1", "Uma")
    await make_profile("u2", "Vic")

    request = await container.workflow.send("u1", "u2")
    assert request.status == RequestStatus.PENDING
    assert notifier.for_user("u2", NOTIFICATION_EVENT)[0]["type"] == "friend_request"

    accepted = await container.workflow.accept(request.id, "u2")
    friendship = accepted.friendship
    assert friendship.communication_level == CommunicationLevel.CHAT

    await container.gate.increment_interaction("u1", "u2")
    after_two = await container.gate.increment_interaction("u2", "u1")
    assert after_two.interaction_count == 2
    assert after_two.communication_level == CommunicationLevel.VOICE

    other = await befriend("u1", "u3")
    assert other.communication_level == CommunicationLevel.CHAT

    await container.ledger.create_premium("u1")
    assert await _level(container, friendship.id) == CommunicationLevel.VIDEO
    assert await _level(container, other.id) == CommunicationLevel.VIDEO
    assert await container.gate.is_video_unlocked("u2", "u1") is True

    await container.ledger.cancel("u1")
    assert await container.gate.has_premium("u2") is False
    assert await _level(container, friendship.id) == CommunicationLevel.VOICE
    assert await _level(container, other.id) == CommunicationLevel.CHAT
    assert await container.gate.is_video_unlocked("u1", "u2") is False
    assert await container.gate.is_voice_unlocked("u1", "u2") is True
