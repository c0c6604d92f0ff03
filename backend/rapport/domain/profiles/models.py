"""Profile read model and access tiers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from rapport.domain.ids import UserId


class AccessLevel(str, Enum):
	OWN = "own"
	CONNECTED = "connected"
	PREVIEW = "preview"


@dataclass(slots=True)
class Profile:
	user_id: UserId
	name: str
	created_at: datetime
	updated_at: datetime
	username: Optional[str] = None
	age: Optional[int] = None
	gender: Optional[str] = None
	religion: Optional[str] = None
	phone: Optional[str] = None
	place: Optional[str] = None
	skills: List[str] = field(default_factory=list)
	profession: Optional[str] = None
	photos: List[str] = field(default_factory=list)
	bio: Optional[str] = None
	college: Optional[str] = None
	company: Optional[str] = None
	website_url: Optional[str] = None
	achievements: List[str] = field(default_factory=list)
	verified: bool = False

	def to_cache(self) -> Dict[str, Any]:
		payload = asdict(self)
		payload["created_at"] = self.created_at.isoformat()
		payload["updated_at"] = self.updated_at.isoformat()
		return payload

	@classmethod
	def from_cache(cls, payload: Dict[str, Any]) -> "Profile":
		known = {f.name for f in fields(cls)}
		data = {k: v for k, v in payload.items() if k in known}
		data["created_at"] = datetime.fromisoformat(data["created_at"])
		data["updated_at"] = datetime.fromisoformat(data["updated_at"])
		return cls(**data)


# Fields the owner may change through the profile update operation.
EDITABLE_FIELDS = frozenset(
	{
		"name",
		"username",
		"age",
		"gender",
		"religion",
		"phone",
		"place",
		"skills",
		"profession",
		"photos",
		"bio",
		"college",
		"company",
		"website_url",
		"achievements",
	}
)

CONNECTED_FIELDS = (
	"user_id",
	"name",
	"username",
	"age",
	"gender",
	"religion",
	"place",
	"skills",
	"profession",
	"bio",
	"photos",
	"achievements",
	"college",
	"company",
	"website_url",
	"verified",
	"created_at",
	"updated_at",
)

OWN_FIELDS = CONNECTED_FIELDS + ("phone",)

PREVIEW_FIELDS = ("user_id", "name", "profession", "bio", "verified")

FIELDS_BY_ACCESS = {
	AccessLevel.OWN: OWN_FIELDS,
	AccessLevel.CONNECTED: CONNECTED_FIELDS,
	AccessLevel.PREVIEW: PREVIEW_FIELDS,
}


def project(profile: Profile, access: AccessLevel) -> Dict[str, Any]:
	"""Disclosed fields for a tier; fields outside the tier are absent, not null."""
	return {name: getattr(profile, name) for name in FIELDS_BY_ACCESS[access]}
