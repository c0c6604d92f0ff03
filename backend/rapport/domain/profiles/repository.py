"""Profile persistence contract plus in-memory implementation."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Protocol

from rapport.domain.ids import UserId
from rapport.domain.profiles.models import Profile


class ProfileRepository(Protocol):
	async def get(self, user_id: UserId) -> Profile | None:
		...

	async def get_many(self, user_ids: Iterable[UserId]) -> List[Profile]:
		...

	async def upsert(self, profile: Profile) -> Profile:
		...

	async def update(self, user_id: UserId, changes: Mapping[str, Any]) -> Profile | None:
		...


class InMemoryProfileRepository(ProfileRepository):
	def __init__(self) -> None:
		self.rows: Dict[UserId, Profile] = {}

	async def get(self, user_id: UserId) -> Profile | None:
		row = self.rows.get(user_id)
		return replace(row) if row else None

	async def get_many(self, user_ids: Iterable[UserId]) -> List[Profile]:
		return [replace(self.rows[uid]) for uid in user_ids if uid in self.rows]

	async def upsert(self, profile: Profile) -> Profile:
		self.rows[profile.user_id] = replace(profile)
		return replace(profile)

	async def update(self, user_id: UserId, changes: Mapping[str, Any]) -> Profile | None:
		row = self.rows.get(user_id)
		if row is None:
			return None
		updated = replace(row, **dict(changes), updated_at=datetime.now(timezone.utc))
		self.rows[user_id] = updated
		return replace(updated)
