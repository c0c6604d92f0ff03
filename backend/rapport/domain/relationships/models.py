"""Domain models for connection requests and friendships."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from rapport.domain.ids import UserId


class RequestStatus(str, Enum):
	"""Connection request states. Cancelled requests are deleted, not stored."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	DECLINED = "declined"


class CommunicationLevel(str, Enum):
	CHAT = "chat"
	VOICE = "voice"
	VIDEO = "video"


@dataclass(slots=True)
class ConnectionRequest:
	"""A directional request from sender to receiver."""

	id: str
	sender_id: UserId
	receiver_id: UserId
	status: RequestStatus
	created_at: datetime
	responded_at: Optional[datetime] = None

	def involves(self, user_id: UserId) -> bool:
		return user_id in (self.sender_id, self.receiver_id)


@dataclass(slots=True)
class Friendship:
	"""One row per unordered pair; user ids keep creation order."""

	id: str
	user1_id: UserId
	user2_id: UserId
	established_at: datetime
	communication_level: CommunicationLevel = CommunicationLevel.CHAT
	interaction_count: int = 0
	blocked: bool = False
	blocked_by: Optional[UserId] = None

	def involves(self, user_id: UserId) -> bool:
		return user_id in (self.user1_id, self.user2_id)

	def other(self, user_id: UserId) -> UserId:
		return self.user2_id if user_id == self.user1_id else self.user1_id

	@property
	def active(self) -> bool:
		return not self.blocked


def level_for_interactions(count: int, threshold: int) -> CommunicationLevel:
	"""Level a non-premium friendship falls back to."""
	return CommunicationLevel.VOICE if count >= threshold else CommunicationLevel.CHAT
