"""Communication gate: derives and upgrades friendship levels, answers unlock queries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from rapport.domain.ids import UserId
from rapport.domain.relationships.exceptions import FriendshipNotFound
from rapport.domain.relationships.models import CommunicationLevel, Friendship, level_for_interactions
from rapport.domain.relationships.repository import RelationshipRepository
from rapport.domain.communication.exceptions import SubscriptionRequired
from rapport.domain.subscriptions.models import is_active_premium
from rapport.domain.subscriptions.repository import SubscriptionRepository
from rapport.infra.cache import CacheService
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


class CommunicationGate:
	"""Reads the relationship store and subscription ledger to gate chat, voice and video.

	Voice is unlocked by any live friendship. The recorded level moves to
	``voice`` only once the interaction count reaches ``voice_threshold``, so a
	friendship can be voice-capable while still displayed at ``chat``.
	"""

	def __init__(
		self,
		relationships: RelationshipRepository,
		subscriptions: SubscriptionRepository,
		cache: CacheService,
		*,
		voice_threshold: int = 2,
	) -> None:
		self._relationships = relationships
		self._subscriptions = subscriptions
		self._cache = cache
		self.voice_threshold = voice_threshold

	async def has_premium(self, user_id: UserId) -> bool:
		return is_active_premium(await self._subscriptions.get_by_user(user_id))

	async def has_active_subscription(self, a: UserId, b: UserId) -> bool:
		first, second = await asyncio.gather(
			self._subscriptions.get_by_user(a),
			self._subscriptions.get_by_user(b),
		)
		return is_active_premium(first) or is_active_premium(second)

	async def live_friendship(self, a: UserId, b: UserId) -> Optional[Friendship]:
		friendship = await self._relationships.find_friendship(a, b)
		if friendship is None or friendship.blocked:
			return None
		return friendship

	async def initial_level(self, a: UserId, b: UserId) -> CommunicationLevel:
		if await self.has_active_subscription(a, b):
			return CommunicationLevel.VIDEO
		return CommunicationLevel.CHAT

	async def is_voice_unlocked(self, a: UserId, b: UserId) -> bool:
		allowed = await self.live_friendship(a, b) is not None
		obs_metrics.inc_gate_check("voice", allowed)
		return allowed

	async def is_video_unlocked(self, a: UserId, b: UserId) -> bool:
		"""Check-and-upgrade: persists ``video`` the first time a subscription allows it.

		Repeated calls converge; once the level is ``video`` no further writes happen.
		"""
		friendship = await self.live_friendship(a, b)
		if friendship is None:
			obs_metrics.inc_gate_check("video", False)
			return False
		if friendship.communication_level == CommunicationLevel.VIDEO:
			obs_metrics.inc_gate_check("video", True)
			return True
		if not await self.has_active_subscription(a, b):
			obs_metrics.inc_gate_check("video", False)
			return False
		await self._write_level(friendship, CommunicationLevel.VIDEO, source="video_check")
		obs_metrics.inc_gate_check("video", True)
		return True

	async def increment_interaction(self, a: UserId, b: UserId) -> Friendship:
		before = await self.live_friendship(a, b)
		updated = await self._relationships.increment_interaction(a, b, voice_threshold=self.voice_threshold)
		if updated is None:
			raise FriendshipNotFound()
		if before is not None and before.communication_level != updated.communication_level:
			obs_metrics.inc_level_change("interaction", updated.communication_level.value)
			await self._cache.invalidate_friendship(a, b)
		return updated

	async def unlock_video(self, a: UserId, b: UserId) -> Friendship:
		friendship = await self.live_friendship(a, b)
		if friendship is None:
			raise FriendshipNotFound()
		if not await self.has_active_subscription(a, b):
			raise SubscriptionRequired()
		if friendship.communication_level == CommunicationLevel.VIDEO:
			return friendship
		updated = await self._write_level(friendship, CommunicationLevel.VIDEO, source="unlock")
		return updated or friendship

	def fallback_level(self, friendship: Friendship) -> CommunicationLevel:
		return level_for_interactions(friendship.interaction_count, self.voice_threshold)

	async def settle_video_level(self, friendship: Friendship) -> Friendship:
		"""Drop a stored ``video`` level that no subscription backs any more."""
		if friendship.communication_level != CommunicationLevel.VIDEO:
			return friendship
		if await self.has_active_subscription(friendship.user1_id, friendship.user2_id):
			return friendship
		updated = await self._write_level(friendship, self.fallback_level(friendship), source="settle")
		return updated or friendship

	async def capabilities(self, user_id: UserId, friend_id: UserId) -> Dict[str, Any]:
		friendship = await self.live_friendship(user_id, friend_id)
		if friendship is None:
			raise FriendshipNotFound()
		voice = await self.is_voice_unlocked(user_id, friend_id)
		video = await self.is_video_unlocked(user_id, friend_id)
		current = await self._relationships.find_friendship(user_id, friend_id) or friendship
		return {
			"communication_level": current.communication_level,
			"interaction_count": current.interaction_count,
			"capabilities": {"chat": True, "voice": voice, "video": video},
		}

	async def _write_level(
		self,
		friendship: Friendship,
		level: CommunicationLevel,
		*,
		source: str,
	) -> Optional[Friendship]:
		updated = await self._relationships.set_level(
			friendship.id,
			level,
			expected=friendship.communication_level,
		)
		if updated is not None:
			obs_metrics.inc_level_change(source, level.value)
			await self._cache.invalidate_friendship(friendship.user1_id, friendship.user2_id)
		else:
			LOGGER.info(
				"level write skipped",
				extra={"friendship_id": friendship.id, "target": level.value, "source": source},
			)
		return updated
