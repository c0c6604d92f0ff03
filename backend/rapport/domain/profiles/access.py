"""Per-viewer profile disclosure: access tier, projected fields, mutual connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from rapport.domain.errors import NotFound, ValidationFailed
from rapport.domain.ids import UserId
from rapport.domain.profiles.models import EDITABLE_FIELDS, AccessLevel, Profile, project
from rapport.domain.profiles.repository import ProfileRepository
from rapport.domain.relationships.repository import RelationshipRepository
from rapport.infra.cache import CacheService
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


class ProfileNotFound(NotFound):
	code = "PROFILE_NOT_FOUND"
	message = "Profile not found"


@dataclass(slots=True)
class MutualFriend:
	user_id: UserId
	name: str


@dataclass(slots=True)
class ProfileView:
	profile: Dict[str, Any]
	access_level: AccessLevel
	mutual_count: int = 0
	mutual_friends: List[MutualFriend] = field(default_factory=list)


class ProfileAccessResolver:
	def __init__(
		self,
		profiles: ProfileRepository,
		relationships: RelationshipRepository,
		cache: CacheService,
		*,
		mutual_limit: int = 3,
	) -> None:
		self._profiles = profiles
		self._relationships = relationships
		self._cache = cache
		self._mutual_limit = mutual_limit

	async def load_profile(self, user_id: UserId) -> Optional[Profile]:
		async def load() -> Optional[dict]:
			profile = await self._profiles.get(user_id)
			return profile.to_cache() if profile is not None else None

		key = self._cache.profile_key(user_id)
		payload = await self._cache.read_through(key, self._cache.profile_ttl, load, namespace="profile")
		if payload is None:
			return None
		try:
			return Profile.from_cache(payload)
		except (KeyError, TypeError, ValueError):
			LOGGER.warning("discarding malformed cached profile", extra={"target_user": user_id})
			await self._cache.invalidate_profile(user_id)
			return await self._profiles.get(user_id)

	async def are_connected(self, a: UserId, b: UserId) -> bool:
		"""Non-blocked friendship existence, cached per sorted pair."""

		async def load() -> bool:
			friendship = await self._relationships.find_friendship(a, b)
			return friendship is not None and not friendship.blocked

		key = self._cache.friendship_key(a, b)
		return bool(await self._cache.read_through(key, self._cache.friendship_ttl, load, namespace="friendship"))

	async def resolve(self, viewer_id: UserId, target_id: UserId) -> ProfileView:
		profile = await self.load_profile(target_id)
		if profile is None:
			raise ProfileNotFound()

		if viewer_id == target_id:
			access = AccessLevel.OWN
		elif await self.are_connected(viewer_id, target_id):
			access = AccessLevel.CONNECTED
		else:
			access = AccessLevel.PREVIEW
		obs_metrics.inc_profile_view(access.value)

		view = ProfileView(profile=project(profile, access), access_level=access)
		if access != AccessLevel.OWN:
			view.mutual_count, view.mutual_friends = await self._mutuals(viewer_id, target_id)
		return view

	async def _mutuals(self, viewer_id: UserId, target_id: UserId) -> tuple[int, List[MutualFriend]]:
		try:
			viewer_friends = {
				f.other(viewer_id) for f in await self._relationships.list_friendships(viewer_id)
			}
			target_friends = {
				f.other(target_id) for f in await self._relationships.list_friendships(target_id)
			}
			mutual = sorted((viewer_friends & target_friends) - {viewer_id, target_id})
			if not mutual:
				return 0, []
			preview_ids = mutual[: self._mutual_limit]
			profiles = {p.user_id: p for p in await self._profiles.get_many(preview_ids)}
			friends = [
				MutualFriend(user_id=uid, name=profiles[uid].name)
				for uid in preview_ids
				if uid in profiles
			]
			return len(mutual), friends
		except Exception:
			LOGGER.exception("mutual connection lookup failed", extra={"target_user": target_id})
			return 0, []

	async def update_profile(self, user_id: UserId, changes: Mapping[str, Any]) -> Profile:
		unknown = set(changes) - EDITABLE_FIELDS
		if unknown:
			raise ValidationFailed(message=f"Fields cannot be updated: {', '.join(sorted(unknown))}")
		updated = await self._profiles.update(user_id, changes)
		if updated is None:
			raise ProfileNotFound()
		await self._cache.invalidate_profile(user_id)
		return updated
