"""Domain-level exceptions for communication gating and calls."""

from __future__ import annotations

from rapport.domain.errors import Locked, NotFound, ValidationFailed


class VoiceLocked(Locked):
	code = "VOICE_LOCKED"


class VideoLocked(Locked):
	code = "VIDEO_LOCKED"
	message = "Video calls require an active subscription"


class SubscriptionRequired(Locked):
	code = "SUBSCRIPTION_REQUIRED"
	message = "Active subscription required for video calls"


class CallNotFound(NotFound):
	code = "CALL_NOT_FOUND"
	message = "Call session not found"


class InvalidCallType(ValidationFailed):
	code = "INVALID_TYPE"
	message = "Call type must be voice or video"


def voice_locked(threshold: int) -> VoiceLocked:
	return VoiceLocked(message=f"Voice calls require at least {threshold} interactions with this user")
