"""Service layer for the connection request state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from rapport.domain.communication.gate import CommunicationGate
from rapport.domain.errors import Forbidden, ValidationFailed
from rapport.domain.ids import UserId
from rapport.domain.profiles.models import Profile
from rapport.domain.profiles.repository import ProfileRepository
from rapport.domain.relationships.exceptions import (
	AlreadyFriends,
	InvalidStatus,
	RequestExists,
	RequestNotFound,
	UserNotFound,
)
from rapport.domain.relationships.models import ConnectionRequest, Friendship, RequestStatus
from rapport.domain.relationships.notifications import (
	FRIENDSHIP_ESTABLISHED_EVENT,
	NOTIFICATION_EVENT,
	ChatRoomProvisioner,
	Notifier,
	deliver,
	display_names,
	notification,
)
from rapport.domain.relationships.repository import RelationshipRepository
from rapport.infra.cache import CacheService
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class AcceptResult:
	request: ConnectionRequest
	friendship: Friendship
	created: bool


@dataclass(slots=True)
class PendingEntry:
	request: ConnectionRequest
	counterpart_id: UserId
	counterpart_name: Optional[str]
	counterpart_profession: Optional[str]


@dataclass(slots=True)
class PendingRequests:
	received: List[PendingEntry] = field(default_factory=list)
	sent: List[PendingEntry] = field(default_factory=list)


class ConnectionWorkflow:
	"""Send, accept, decline and cancel connection requests.

	Acceptance materialises at most one friendship per pair through the
	store's insert-if-absent; losing that race returns the existing row.
	"""

	def __init__(
		self,
		relationships: RelationshipRepository,
		profiles: ProfileRepository,
		gate: CommunicationGate,
		cache: CacheService,
		notifier: Notifier,
		chat_rooms: ChatRoomProvisioner,
	) -> None:
		self._relationships = relationships
		self._profiles = profiles
		self._gate = gate
		self._cache = cache
		self._notifier = notifier
		self._chat_rooms = chat_rooms

	async def send(self, sender_id: UserId, receiver_id: UserId) -> ConnectionRequest:
		if not sender_id or not receiver_id:
			raise ValidationFailed(message="Receiver ID is required")
		if sender_id == receiver_id:
			obs_metrics.inc_request("send", "self")
			raise ValidationFailed(message="You cannot send a connection request to yourself")
		if await self._profiles.get(receiver_id) is None:
			obs_metrics.inc_request("send", "user_not_found")
			raise UserNotFound()
		if await self._relationships.find_friendship(sender_id, receiver_id) is not None:
			obs_metrics.inc_request("send", "already_friends")
			raise AlreadyFriends()

		now = _now()
		existing = await self._relationships.find_request(sender_id, receiver_id)
		if existing is None:
			request = await self._relationships.create_request(sender_id, receiver_id, now)
		elif existing.status == RequestStatus.PENDING:
			request = None
		else:
			# Declined, or accepted but the friendship has since been removed.
			request = await self._relationships.reopen_request(existing.id, now)
		if request is None:
			obs_metrics.inc_request("send", "exists")
			raise RequestExists()

		obs_metrics.inc_request("send", "ok")
		sender_name = (await display_names(self._profiles, [sender_id])).get(sender_id)
		await deliver(
			self._notifier,
			receiver_id,
			NOTIFICATION_EVENT,
			notification(
				"friend_request",
				"New Connection Request",
				f"{sender_name or 'Someone'} sent you a connection request",
				{"requestId": request.id, "senderId": sender_id, "senderName": sender_name},
			),
		)
		return request

	async def accept(self, request_id: str, acting_user_id: UserId) -> AcceptResult:
		request = await self._load_for_receiver(request_id, acting_user_id, action="accept")
		level = await self._gate.initial_level(request.sender_id, request.receiver_id)
		accepted = await self._relationships.transition_request(
			request.id,
			expected=RequestStatus.PENDING,
			status=RequestStatus.ACCEPTED,
			responded_at=_now(),
		)
		if accepted is None:
			raise InvalidStatus()

		friendship, created = await self._relationships.create_friendship_if_absent(
			request.sender_id,
			request.receiver_id,
			level=level,
			now=_now(),
		)
		obs_metrics.inc_request("accept", "created" if created else "existing")
		if created:
			obs_metrics.inc_friendship_created(friendship.communication_level.value)
			await self._cache.invalidate_friendship(request.sender_id, request.receiver_id)
			await self._on_established(friendship, request)
		return AcceptResult(request=accepted, friendship=friendship, created=created)

	async def decline(self, request_id: str, acting_user_id: UserId) -> ConnectionRequest:
		request = await self._load_for_receiver(request_id, acting_user_id, action="decline")
		declined = await self._relationships.transition_request(
			request.id,
			expected=RequestStatus.PENDING,
			status=RequestStatus.DECLINED,
			responded_at=_now(),
		)
		if declined is None:
			raise InvalidStatus()
		obs_metrics.inc_request("decline", "ok")
		return declined

	async def cancel(self, request_id: str, acting_user_id: UserId) -> ConnectionRequest:
		request = await self._relationships.get_request(request_id)
		if request is None:
			raise RequestNotFound()
		if request.sender_id != acting_user_id:
			raise Forbidden(message="You can only cancel requests you sent")
		if request.status != RequestStatus.PENDING:
			raise InvalidStatus(message="Only pending requests can be cancelled")
		if not await self._relationships.delete_pending_request(request.id):
			raise InvalidStatus(message="Only pending requests can be cancelled")
		obs_metrics.inc_request("cancel", "ok")
		return request

	async def list_pending(self, user_id: UserId) -> PendingRequests:
		received = await self._relationships.list_requests(user_id, direction="received")
		sent = await self._relationships.list_requests(user_id, direction="sent")
		counterpart_ids = {r.sender_id for r in received} | {r.receiver_id for r in sent}
		profiles: Dict[UserId, Profile] = {
			p.user_id: p for p in await self._profiles.get_many(sorted(counterpart_ids))
		}
		return PendingRequests(
			received=[self._entry(r, r.sender_id, profiles) for r in received],
			sent=[self._entry(r, r.receiver_id, profiles) for r in sent],
		)

	@staticmethod
	def _entry(request: ConnectionRequest, counterpart: UserId, profiles: Dict[UserId, Profile]) -> PendingEntry:
		profile = profiles.get(counterpart)
		return PendingEntry(
			request=request,
			counterpart_id=counterpart,
			counterpart_name=profile.name if profile else None,
			counterpart_profession=profile.profession if profile else None,
		)

	async def _load_for_receiver(self, request_id: str, acting_user_id: UserId, *, action: str) -> ConnectionRequest:
		request = await self._relationships.get_request(request_id)
		if request is None:
			raise RequestNotFound()
		if request.receiver_id != acting_user_id:
			obs_metrics.inc_request(action, "forbidden")
			raise Forbidden(message=f"You can only {action} requests sent to you")
		if request.status != RequestStatus.PENDING:
			raise InvalidStatus()
		return request

	async def _on_established(self, friendship: Friendship, request: ConnectionRequest) -> None:
		try:
			await self._chat_rooms.ensure_personal_room(request.sender_id, request.receiver_id)
		except Exception:
			LOGGER.exception("chat room provisioning failed", extra={"friendship_id": friendship.id})

		names = await display_names(self._profiles, [request.sender_id, request.receiver_id])
		for user_id, friend_id in (
			(request.sender_id, request.receiver_id),
			(request.receiver_id, request.sender_id),
		):
			friend_name = names.get(friend_id)
			await deliver(
				self._notifier,
				user_id,
				FRIENDSHIP_ESTABLISHED_EVENT,
				{"friendshipId": friendship.id, "friendId": friend_id, "friendName": friend_name},
			)
			await deliver(
				self._notifier,
				user_id,
				NOTIFICATION_EVENT,
				notification(
					"connection_accepted",
					"New Connection",
					f"You are now connected with {friend_name or 'a new friend'}",
					{"friendshipId": friendship.id, "friendId": friend_id},
				),
			)
