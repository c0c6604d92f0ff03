"""Domain-level exceptions for connection requests & friendships."""

from __future__ import annotations

from rapport.domain.errors import Conflict, Forbidden, NotFound, ValidationFailed


class UserNotFound(NotFound):
	code = "USER_NOT_FOUND"
	message = "User not found"


class RequestNotFound(NotFound):
	code = "REQUEST_NOT_FOUND"
	message = "Connection request not found"


class FriendshipNotFound(NotFound):
	code = "FRIENDSHIP_NOT_FOUND"
	message = "Friendship not found"


class RequestExists(Conflict):
	code = "REQUEST_EXISTS"
	message = "Connection request already sent"


class AlreadyFriends(Conflict):
	code = "ALREADY_FRIENDS"
	message = "You are already connected with this user"


class InvalidStatus(ValidationFailed):
	code = "INVALID_STATUS"
	message = "Connection request has already been processed"


class NotParticipant(Forbidden):
	message = "You can only manage your own connections"
