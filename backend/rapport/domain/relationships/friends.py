"""Service layer for friend lists, removal and blocking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from rapport.domain.communication.gate import CommunicationGate
from rapport.domain.errors import Forbidden
from rapport.domain.ids import UserId
from rapport.domain.profiles.models import Profile
from rapport.domain.profiles.repository import ProfileRepository
from rapport.domain.relationships.exceptions import FriendshipNotFound, NotParticipant
from rapport.domain.relationships.models import CommunicationLevel, Friendship
from rapport.domain.relationships.repository import RelationshipRepository
from rapport.infra.cache import CacheService
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FriendEntry:
	friendship_id: str
	friend_id: UserId
	name: Optional[str]
	profession: Optional[str]
	place: Optional[str]
	bio: Optional[str]
	communication_level: CommunicationLevel
	established_at: datetime
	photos: List[str] = field(default_factory=list)


class FriendService:
	def __init__(
		self,
		relationships: RelationshipRepository,
		profiles: ProfileRepository,
		cache: CacheService,
		gate: CommunicationGate,
	) -> None:
		self._relationships = relationships
		self._profiles = profiles
		self._cache = cache
		self._gate = gate

	async def list_friends(self, user_id: UserId) -> List[FriendEntry]:
		"""Non-blocked friendships of the user, newest first."""
		friendships = await self._relationships.list_friendships(user_id)
		friend_ids = [f.other(user_id) for f in friendships]
		profiles: Dict[UserId, Profile] = {p.user_id: p for p in await self._profiles.get_many(friend_ids)}
		entries: List[FriendEntry] = []
		for friendship in friendships:
			friend_id = friendship.other(user_id)
			profile = profiles.get(friend_id)
			entries.append(
				FriendEntry(
					friendship_id=friendship.id,
					friend_id=friend_id,
					name=profile.name if profile else None,
					profession=profile.profession if profile else None,
					place=profile.place if profile else None,
					bio=profile.bio if profile else None,
					photos=list(profile.photos) if profile else [],
					communication_level=friendship.communication_level,
					established_at=friendship.established_at,
				)
			)
		return entries

	async def list_for_user(self, viewer_id: UserId, target_id: UserId) -> List[FriendEntry]:
		"""Friend list of another user, visible only to their connections."""
		if viewer_id != target_id:
			friendship = await self._relationships.find_friendship(viewer_id, target_id)
			if friendship is None or friendship.blocked:
				raise Forbidden(message="You can only view friend lists of your connections")
		return await self.list_friends(target_id)

	async def remove(self, friendship_id: str, acting_user_id: UserId) -> Friendship:
		friendship = await self._owned(friendship_id, acting_user_id)
		await self._delete(friendship)
		return friendship

	async def remove_by_user(self, acting_user_id: UserId, friend_id: UserId) -> Friendship:
		friendship = await self._relationships.find_friendship(acting_user_id, friend_id)
		if friendship is None:
			raise FriendshipNotFound()
		await self._delete(friendship)
		return friendship

	async def block(self, friendship_id: str, acting_user_id: UserId) -> Friendship:
		friendship = await self._owned(friendship_id, acting_user_id)
		if friendship.blocked:
			return friendship
		updated = await self._relationships.set_blocked(friendship.id, blocked=True, blocked_by=acting_user_id)
		if updated is None:
			raise FriendshipNotFound()
		await self._cache.invalidate_friendship(friendship.user1_id, friendship.user2_id)
		obs_metrics.inc_friendship_change("block")
		return updated

	async def unblock(self, friendship_id: str, acting_user_id: UserId) -> Friendship:
		friendship = await self._owned(friendship_id, acting_user_id)
		if not friendship.blocked:
			return friendship
		if friendship.blocked_by is not None and friendship.blocked_by != acting_user_id:
			raise Forbidden(message="Only the user who blocked this friendship can unblock it")
		updated = await self._relationships.set_blocked(friendship.id, blocked=False, blocked_by=None)
		if updated is None:
			raise FriendshipNotFound()
		await self._cache.invalidate_friendship(friendship.user1_id, friendship.user2_id)
		obs_metrics.inc_friendship_change("unblock")
		# Premium may have lapsed while the row was blocked and skipped by the downgrade job.
		try:
			return await self._gate.settle_video_level(updated)
		except Exception:
			LOGGER.exception("level re-check after unblock failed", extra={"friendship_id": updated.id})
			return updated

	async def _owned(self, friendship_id: str, acting_user_id: UserId) -> Friendship:
		friendship = await self._relationships.get_friendship(friendship_id)
		if friendship is None:
			raise FriendshipNotFound()
		if not friendship.involves(acting_user_id):
			raise NotParticipant()
		return friendship

	async def _delete(self, friendship: Friendship) -> None:
		if not await self._relationships.delete_friendship(friendship.id):
			raise FriendshipNotFound()
		await self._cache.invalidate_friendship(friendship.user1_id, friendship.user2_id)
		obs_metrics.inc_friendship_change("remove")
		LOGGER.info("friendship removed", extra={"friendship_id": friendship.id})
