"""Relationship store contract plus an in-memory implementation."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Protocol, Sequence, Tuple
from uuid import uuid4

from rapport.domain.ids import UserId, ordered_pair
from rapport.domain.relationships.models import (
	CommunicationLevel,
	ConnectionRequest,
	Friendship,
	RequestStatus,
)


class RelationshipRepository(Protocol):
	"""Persistence for connection requests and friendships.

	Friendship lookups by pair match both orderings. Mutating calls return the
	stored row, or ``None`` when the row is missing or a guard did not match.
	"""

	async def get_request(self, request_id: str) -> ConnectionRequest | None:
		...

	async def find_request(self, sender_id: UserId, receiver_id: UserId) -> ConnectionRequest | None:
		...

	async def create_request(self, sender_id: UserId, receiver_id: UserId, now: datetime) -> ConnectionRequest | None:
		"""Insert a pending request; ``None`` when the ordered pair already has a row."""
		...

	async def reopen_request(self, request_id: str, now: datetime) -> ConnectionRequest | None:
		...

	async def transition_request(
		self,
		request_id: str,
		*,
		expected: RequestStatus,
		status: RequestStatus,
		responded_at: datetime,
	) -> ConnectionRequest | None:
		...

	async def delete_pending_request(self, request_id: str) -> bool:
		...

	async def list_requests(
		self,
		user_id: UserId,
		*,
		direction: str,
		status: RequestStatus = RequestStatus.PENDING,
	) -> Sequence[ConnectionRequest]:
		...

	async def get_friendship(self, friendship_id: str) -> Friendship | None:
		...

	async def find_friendship(self, a: UserId, b: UserId) -> Friendship | None:
		...

	async def create_friendship_if_absent(
		self,
		user1_id: UserId,
		user2_id: UserId,
		*,
		level: CommunicationLevel,
		now: datetime,
	) -> Tuple[Friendship, bool]:
		...

	async def list_friendships(self, user_id: UserId, *, include_blocked: bool = False) -> Sequence[Friendship]:
		...

	async def delete_friendship(self, friendship_id: str) -> bool:
		...

	async def set_blocked(
		self,
		friendship_id: str,
		*,
		blocked: bool,
		blocked_by: UserId | None,
	) -> Friendship | None:
		...

	async def set_level(
		self,
		friendship_id: str,
		level: CommunicationLevel,
		*,
		expected: CommunicationLevel | None = None,
	) -> Friendship | None:
		...

	async def increment_interaction(self, a: UserId, b: UserId, *, voice_threshold: int) -> Friendship | None:
		...


class InMemoryRelationshipRepository(RelationshipRepository):
	"""Dict-backed store used by tests and the ``memory`` store backend."""

	def __init__(self) -> None:
		self.requests: Dict[str, ConnectionRequest] = {}
		self.friendships: Dict[str, Friendship] = {}
		self._pairs: Dict[Tuple[UserId, UserId], str] = {}
		self._lock = asyncio.Lock()

	async def get_request(self, request_id: str) -> ConnectionRequest | None:
		row = self.requests.get(request_id)
		return replace(row) if row else None

	async def find_request(self, sender_id: UserId, receiver_id: UserId) -> ConnectionRequest | None:
		for row in self.requests.values():
			if row.sender_id == sender_id and row.receiver_id == receiver_id:
				return replace(row)
		return None

	async def create_request(self, sender_id: UserId, receiver_id: UserId, now: datetime) -> ConnectionRequest | None:
		if await self.find_request(sender_id, receiver_id) is not None:
			return None
		row = ConnectionRequest(
			id=str(uuid4()),
			sender_id=sender_id,
			receiver_id=receiver_id,
			status=RequestStatus.PENDING,
			created_at=now,
		)
		self.requests[row.id] = row
		return replace(row)

	async def reopen_request(self, request_id: str, now: datetime) -> ConnectionRequest | None:
		row = self.requests.get(request_id)
		if row is None or row.status == RequestStatus.PENDING:
			return None
		row.status = RequestStatus.PENDING
		row.created_at = now
		row.responded_at = None
		return replace(row)

	async def transition_request(
		self,
		request_id: str,
		*,
		expected: RequestStatus,
		status: RequestStatus,
		responded_at: datetime,
	) -> ConnectionRequest | None:
		row = self.requests.get(request_id)
		if row is None or row.status != expected:
			return None
		row.status = status
		row.responded_at = responded_at
		return replace(row)

	async def delete_pending_request(self, request_id: str) -> bool:
		row = self.requests.get(request_id)
		if row is None or row.status != RequestStatus.PENDING:
			return False
		del self.requests[request_id]
		return True

	async def list_requests(
		self,
		user_id: UserId,
		*,
		direction: str,
		status: RequestStatus = RequestStatus.PENDING,
	) -> List[ConnectionRequest]:
		field = "receiver_id" if direction == "received" else "sender_id"
		rows = [
			replace(row)
			for row in self.requests.values()
			if getattr(row, field) == user_id and row.status == status
		]
		rows.sort(key=lambda r: r.created_at, reverse=True)
		return rows

	async def get_friendship(self, friendship_id: str) -> Friendship | None:
		row = self.friendships.get(friendship_id)
		return replace(row) if row else None

	async def find_friendship(self, a: UserId, b: UserId) -> Friendship | None:
		friendship_id = self._pairs.get(ordered_pair(a, b))
		if friendship_id is None:
			return None
		return await self.get_friendship(friendship_id)

	async def create_friendship_if_absent(
		self,
		user1_id: UserId,
		user2_id: UserId,
		*,
		level: CommunicationLevel,
		now: datetime,
	) -> Tuple[Friendship, bool]:
		async with self._lock:
			key = ordered_pair(user1_id, user2_id)
			existing_id = self._pairs.get(key)
			if existing_id is not None:
				return replace(self.friendships[existing_id]), False
			row = Friendship(
				id=str(uuid4()),
				user1_id=user1_id,
				user2_id=user2_id,
				established_at=now,
				communication_level=level,
			)
			self.friendships[row.id] = row
			self._pairs[key] = row.id
			return replace(row), True

	async def list_friendships(self, user_id: UserId, *, include_blocked: bool = False) -> List[Friendship]:
		rows = [
			replace(row)
			for row in self.friendships.values()
			if row.involves(user_id) and (include_blocked or not row.blocked)
		]
		rows.sort(key=lambda r: r.established_at, reverse=True)
		return rows

	async def delete_friendship(self, friendship_id: str) -> bool:
		row = self.friendships.pop(friendship_id, None)
		if row is None:
			return False
		self._pairs.pop(ordered_pair(row.user1_id, row.user2_id), None)
		return True

	async def set_blocked(
		self,
		friendship_id: str,
		*,
		blocked: bool,
		blocked_by: UserId | None,
	) -> Friendship | None:
		row = self.friendships.get(friendship_id)
		if row is None:
			return None
		row.blocked = blocked
		row.blocked_by = blocked_by if blocked else None
		return replace(row)

	async def set_level(
		self,
		friendship_id: str,
		level: CommunicationLevel,
		*,
		expected: CommunicationLevel | None = None,
	) -> Friendship | None:
		row = self.friendships.get(friendship_id)
		if row is None:
			return None
		if expected is not None and row.communication_level != expected:
			return None
		row.communication_level = level
		return replace(row)

	async def increment_interaction(self, a: UserId, b: UserId, *, voice_threshold: int) -> Friendship | None:
		friendship_id = self._pairs.get(ordered_pair(a, b))
		row = self.friendships.get(friendship_id) if friendship_id else None
		if row is None or row.blocked:
			return None
		row.interaction_count += 1
		if row.interaction_count >= voice_threshold and row.communication_level == CommunicationLevel.CHAT:
			row.communication_level = CommunicationLevel.VOICE
		return replace(row)
