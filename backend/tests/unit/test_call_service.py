import pytest

from rapport.domain.communication.calls import CALL_ENDED_EVENT, CALL_INCOMING_EVENT, CallStatus, CallType, parse_call_type
from rapport.domain.communication.exceptions import CallNotFound, InvalidCallType, VideoLocked, VoiceLocked
from rapport.domain.errors import Forbidden, ValidationFailed
from rapport.domain.relationships.notifications import NOTIFICATION_EVENT


@pytest.mark.asyncio
async def test_voice_call_between_friends(container, befriend, notifier):
    await befriend("alice", "bob")

    session = await container.calls.initiate("alice", "bob", CallType.VOICE)

    assert session.status == CallStatus.RINGING
    assert session.participant_ids == ["alice", "bob"]
    incoming = notifier.for_user("bob", CALL_INCOMING_EVENT)
    assert incoming == [
        {"callId": session.id, "type": "voice", "initiatorId": "alice", "initiatorName": "Alice"}
    ]


@pytest.mark.asyncio
async def test_call_to_stranger_is_voice_locked(container, make_profile):
    await make_profile("alice")
    await make_profile("bob")

    with pytest.raises(VoiceLocked) as exc:
        await container.calls.initiate("alice", "bob", CallType.VOICE)
    assert exc.value.message == "Voice calls require at least 2 interactions with this user"

    with pytest.raises(VoiceLocked):
        await container.calls.initiate("alice", "bob", CallType.VIDEO)


@pytest.mark.asyncio
async def test_video_call_requires_subscription(container, befriend, make_premium):
    await befriend("alice", "bob")
    with pytest.raises(VideoLocked):
        await container.calls.initiate("alice", "bob", CallType.VIDEO)

    await make_premium("bob")
    session = await container.calls.initiate("alice", "bob", CallType.VIDEO)
    assert session.type == CallType.VIDEO


@pytest.mark.asyncio
async def test_cannot_call_yourself(container, make_profile):
    await make_profile("alice")
    with pytest.raises(ValidationFailed):
        await container.calls.initiate("alice", "alice", CallType.VOICE)


@pytest.mark.asyncio
async def test_end_call_notifies_other_participants(container, befriend, notifier):
    await befriend("alice", "bob")
    session = await container.calls.initiate("alice", "bob", CallType.VOICE)

    ended = await container.calls.end(session.id, "bob")

    assert ended.status == CallStatus.ENDED
    assert ended.ended_at is not None
    assert notifier.for_user("alice", CALL_ENDED_EVENT) == [{"callId": session.id, "endedBy": "bob"}]
    assert notifier.for_user("bob", CALL_ENDED_EVENT) == []

    again = await container.calls.end(session.id, "alice")
    assert again.ended_at == ended.ended_at


@pytest.mark.asyncio
async def test_end_call_guards(container, befriend):
    await befriend("alice", "bob")
    session = await container.calls.initiate("alice", "bob", CallType.VOICE)

    with pytest.raises(Forbidden):
        await container.calls.end(session.id, "mallory")
    with pytest.raises(CallNotFound):
        await container.calls.end("missing", "alice")


def test_parse_call_type():
    assert parse_call_type("VIDEO") == CallType.VIDEO
    with pytest.raises(InvalidCallType):
        parse_call_type("screen")
    with pytest.raises(ValidationFailed):
        parse_call_type("")


@pytest.mark.asyncio
async def test_initiate_succeeds_when_initiator_name_lookup_fails(container, befriend, notifier, monkeypatch):
    await befriend("alice", "bob")

    async def profile_store_down(user_ids):
        raise RuntimeError("profile store down")

    monkeypatch.setattr(container.profiles, "get_many", profile_store_down)

    session = await container.calls.initiate("alice", "bob", CallType.VOICE)

    assert await container.call_sessions.get(session.id) is not None
    incoming = notifier.for_user("bob", CALL_INCOMING_EVENT)
    assert incoming[-1]["initiatorName"] is None
    assert notifier.for_user("bob", NOTIFICATION_EVENT)[-1]["message"] == "Someone is calling you"
