"""Pydantic schemas for profile disclosure and updates."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field
from pydantic.alias_generators import to_camel

from rapport.domain.profiles.access import ProfileView
from rapport.domain.schemas import CamelModel


class MutualFriendOut(CamelModel):
	user_id: str
	name: str


class ProfileViewOut(CamelModel):
	# Keys outside the viewer's tier are absent rather than null, so the
	# disclosed fields travel as a plain dict.
	profile: Dict[str, Any]
	access_level: Literal["own", "connected", "preview"]
	mutual_count: int
	mutual_friends: List[MutualFriendOut]

	@classmethod
	def from_domain(cls, view: ProfileView) -> "ProfileViewOut":
		return cls(
			profile={to_camel(key): value for key, value in view.profile.items()},
			access_level=view.access_level.value,
			mutual_count=view.mutual_count,
			mutual_friends=[MutualFriendOut(user_id=m.user_id, name=m.name) for m in view.mutual_friends],
		)


class ProfileUpdateRequest(CamelModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=120)
	username: Optional[str] = Field(default=None, max_length=60)
	age: Optional[int] = Field(default=None, ge=13, le=120)
	gender: Optional[str] = None
	religion: Optional[str] = None
	phone: Optional[str] = None
	place: Optional[str] = None
	skills: Optional[List[str]] = None
	profession: Optional[str] = None
	photos: Optional[List[str]] = None
	bio: Optional[str] = Field(default=None, max_length=1000)
	college: Optional[str] = None
	company: Optional[str] = None
	website_url: Optional[str] = None
	achievements: Optional[List[str]] = None

	def changes(self) -> Dict[str, Any]:
		changes = self.model_dump(exclude_unset=True, by_alias=False)
		if changes.get("name", "") is None:
			del changes["name"]
		return changes
