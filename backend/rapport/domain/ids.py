"""Canonical user identifier handling.

Identifiers reach the services as strings, UUIDs, dict payloads or model
objects. Everything is normalised to ``UserId`` at the HTTP and database
boundary so comparisons inside the domain are plain string equality.
"""

from __future__ import annotations

from typing import Any, Mapping, NewType, Tuple
from uuid import UUID

from rapport.domain.errors import ValidationFailed

UserId = NewType("UserId", str)

_ID_KEYS = ("id", "_id", "userId", "user_id")


def normalize_user_id(value: Any) -> UserId:
	"""Return the canonical string form of a user reference.

	Raises ValidationFailed when nothing usable can be extracted.
	"""
	if isinstance(value, UUID):
		return UserId(str(value))
	if isinstance(value, str):
		text = value.strip()
		if not text:
			raise ValidationFailed(message="User id must not be empty")
		return UserId(text)
	if isinstance(value, Mapping):
		for key in _ID_KEYS:
			if value.get(key) is not None:
				return normalize_user_id(value[key])
		raise ValidationFailed(message="User reference has no id")
	nested = getattr(value, "id", None)
	if nested is not None and nested is not value:
		return normalize_user_id(nested)
	if isinstance(value, int) and not isinstance(value, bool):
		return UserId(str(value))
	raise ValidationFailed(message="Unsupported user reference")


def ordered_pair(a: UserId, b: UserId) -> Tuple[UserId, UserId]:
	return (a, b) if a <= b else (b, a)
