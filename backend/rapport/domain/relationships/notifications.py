"""Outbound collaborators for relationship events: real-time notifier and chat rooms."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from rapport.domain.ids import UserId
from rapport.domain.profiles.repository import ProfileRepository

LOGGER = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification:new"
FRIENDSHIP_ESTABLISHED_EVENT = "friendship:established"


class Notifier(Protocol):
	async def emit(self, user_id: UserId, event: str, payload: Dict[str, Any]) -> None:
		...


class ChatRoomProvisioner(Protocol):
	async def ensure_personal_room(self, a: UserId, b: UserId) -> None:
		...


class NoopNotifier(Notifier):
	async def emit(self, user_id: UserId, event: str, payload: Dict[str, Any]) -> None:
		return None


class NoopChatRooms(ChatRoomProvisioner):
	async def ensure_personal_room(self, a: UserId, b: UserId) -> None:
		return None


async def deliver(notifier: Notifier, user_id: UserId, event: str, payload: Dict[str, Any]) -> bool:
	"""Fire-and-forget emit; failures are logged and never reach the caller."""
	try:
		await notifier.emit(user_id, event, payload)
	except Exception:
		LOGGER.exception("realtime emit failed", extra={"event": event, "target_user": user_id})
		return False
	return True


async def display_names(profiles: ProfileRepository, user_ids: List[UserId]) -> Dict[UserId, Optional[str]]:
	"""Names for notification copy; a failed lookup yields no names rather than an error."""
	try:
		found = await profiles.get_many(user_ids)
	except Exception:
		LOGGER.exception("notification name lookup failed", extra={"user_ids": user_ids})
		return {}
	return {p.user_id: p.name for p in found}


def notification(
	kind: str,
	title: str,
	message: str,
	data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
	return {"type": kind, "title": title, "message": message, "data": data or {}}
