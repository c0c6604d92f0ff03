"""Socket.IO namespace for relationship and call updates."""

from __future__ import annotations

from typing import Any, Dict, Optional

import socketio

from rapport.domain.ids import UserId, normalize_user_id
from rapport.domain.relationships.notifications import Notifier
from rapport.infra.auth import verify_access_jwt
from rapport.obs import metrics as obs_metrics
from rapport.settings import settings


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class SocialNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/social")
		self._sessions: dict[str, UserId] = {}

	def _resolve_user(self, environ: dict, auth: Optional[dict]) -> Optional[UserId]:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or {}
		token = auth_payload.get("token")
		if token:
			try:
				return verify_access_jwt(str(token)).id
			except Exception:
				return None
		if settings.is_dev():
			raw = auth_payload.get("userId") or _header(scope, "x-user-id")
			if raw:
				return normalize_user_id(raw)
		return None

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user_id = self._resolve_user(environ, auth)
		if not user_id:
			raise ConnectionRefusedError("unauthenticated")
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user_id
		await self.enter_room(sid, self.user_room(user_id))
		await self.emit("social:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		user_id = self._sessions.pop(sid, None)
		if user_id:
			obs_metrics.socket_disconnected(self.namespace)
			await self.leave_room(sid, self.user_room(user_id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


class SocketNotifier(Notifier):
	"""Emits events into a user's personal room on the social namespace."""

	def __init__(self, namespace: SocialNamespace) -> None:
		self._namespace = namespace

	async def emit(self, user_id: UserId, event: str, payload: Dict[str, Any]) -> None:
		obs_metrics.socket_event(self._namespace.namespace, event)
		await self._namespace.emit(event, payload, room=SocialNamespace.user_room(user_id))
