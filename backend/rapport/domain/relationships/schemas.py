"""Pydantic schemas for connection requests and friendships."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from rapport.domain.relationships.friends import FriendEntry
from rapport.domain.relationships.models import ConnectionRequest, Friendship
from rapport.domain.relationships.workflow import PendingEntry, PendingRequests
from rapport.domain.schemas import CamelModel


class ConnectionSendRequest(CamelModel):
	receiver_id: Optional[str] = Field(default=None, description="Target user for the request")


class ConnectionRequestOut(CamelModel):
	id: str
	sender_id: str
	receiver_id: str
	status: Literal["pending", "accepted", "declined"]
	created_at: datetime
	responded_at: Optional[datetime] = None

	@classmethod
	def from_domain(cls, request: ConnectionRequest) -> "ConnectionRequestOut":
		return cls(
			id=request.id,
			sender_id=request.sender_id,
			receiver_id=request.receiver_id,
			status=request.status.value,
			created_at=request.created_at,
			responded_at=request.responded_at,
		)


class FriendshipOut(CamelModel):
	id: str
	user1_id: str
	user2_id: str
	established_at: datetime
	communication_level: Literal["chat", "voice", "video"]
	interaction_count: int
	blocked: bool

	@classmethod
	def from_domain(cls, friendship: Friendship) -> "FriendshipOut":
		return cls(
			id=friendship.id,
			user1_id=friendship.user1_id,
			user2_id=friendship.user2_id,
			established_at=friendship.established_at,
			communication_level=friendship.communication_level.value,
			interaction_count=friendship.interaction_count,
			blocked=friendship.blocked,
		)


class ConnectionSendResponse(CamelModel):
	message: str
	request: ConnectionRequestOut


class AcceptResponse(CamelModel):
	message: str
	request: ConnectionRequestOut
	friendship: FriendshipOut


class RequestActionResponse(CamelModel):
	message: str
	request: ConnectionRequestOut


class CancelResponse(CamelModel):
	message: str
	request_id: str
	status: Literal["cancelled"] = "cancelled"


class ReceivedRequestOut(CamelModel):
	id: str
	sender_id: str
	sender_name: Optional[str] = None
	sender_profession: Optional[str] = None
	created_at: datetime


class SentRequestOut(CamelModel):
	id: str
	receiver_id: str
	receiver_name: Optional[str] = None
	receiver_profession: Optional[str] = None
	created_at: datetime


class PendingRequestsOut(CamelModel):
	received: List[ReceivedRequestOut]
	sent: List[SentRequestOut]
	total_received: int
	total_sent: int

	@classmethod
	def from_domain(cls, pending: PendingRequests) -> "PendingRequestsOut":
		received = [_received(entry) for entry in pending.received]
		sent = [_sent(entry) for entry in pending.sent]
		return cls(received=received, sent=sent, total_received=len(received), total_sent=len(sent))


def _received(entry: PendingEntry) -> ReceivedRequestOut:
	return ReceivedRequestOut(
		id=entry.request.id,
		sender_id=entry.counterpart_id,
		sender_name=entry.counterpart_name,
		sender_profession=entry.counterpart_profession,
		created_at=entry.request.created_at,
	)


def _sent(entry: PendingEntry) -> SentRequestOut:
	return SentRequestOut(
		id=entry.request.id,
		receiver_id=entry.counterpart_id,
		receiver_name=entry.counterpart_name,
		receiver_profession=entry.counterpart_profession,
		created_at=entry.request.created_at,
	)


class FriendOut(CamelModel):
	friendship_id: str
	friend_id: str
	name: Optional[str] = None
	profession: Optional[str] = None
	place: Optional[str] = None
	bio: Optional[str] = None
	photos: List[str] = Field(default_factory=list)
	communication_level: Literal["chat", "voice", "video"]
	established_at: datetime

	@classmethod
	def from_domain(cls, entry: FriendEntry) -> "FriendOut":
		return cls(
			friendship_id=entry.friendship_id,
			friend_id=entry.friend_id,
			name=entry.name,
			profession=entry.profession,
			place=entry.place,
			bio=entry.bio,
			photos=list(entry.photos),
			communication_level=entry.communication_level.value,
			established_at=entry.established_at,
		)


class FriendListOut(CamelModel):
	friends: List[FriendOut]
	total: int


class FriendshipActionResponse(CamelModel):
	message: str
	friendship: Optional[FriendshipOut] = None
