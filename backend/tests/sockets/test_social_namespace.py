from unittest.mock import AsyncMock

import pytest
import socketio

from rapport.domain.relationships.sockets import SocialNamespace, SocketNotifier
from rapport.infra import jwt as jwt_helper


def _namespace():
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = SocialNamespace()
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	namespace.enter_room = AsyncMock()
	namespace.leave_room = AsyncMock()
	return namespace


@pytest.mark.asyncio
async def test_connect_requires_identity():
	namespace = _namespace()

	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})


@pytest.mark.asyncio
async def test_connect_with_token_joins_personal_room():
	namespace = _namespace()
	token = jwt_helper.encode_access({"sub": "alice"})

	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}}, {"token": token})

	namespace.enter_room.assert_awaited_once_with("sid-1", "user:alice")
	events = [call.args[0] for call in namespace.emit.await_args_list]
	assert "social:ack" in events

	await namespace.trigger_event("disconnect", "sid-1")
	namespace.leave_room.assert_awaited_once_with("sid-1", "user:alice")


@pytest.mark.asyncio
async def test_dev_header_identity():
	namespace = _namespace()
	scope = {"headers": [(b"x-user-id", b"bob")]}

	await namespace.trigger_event("connect", "sid-2", {"asgi.scope": scope})

	namespace.enter_room.assert_awaited_once_with("sid-2", "user:bob")


@pytest.mark.asyncio
async def test_notifier_targets_user_room():
	namespace = _namespace()
	notifier = SocketNotifier(namespace)

	await notifier.emit("alice", "notification:new", {"type": "call"})

	namespace.emit.assert_awaited_once_with("notification:new", {"type": "call"}, room="user:alice")
