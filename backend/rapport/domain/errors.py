"""Domain-level exceptions shared by relationship, gate, ledger and profile services."""

from __future__ import annotations

from typing import Optional


class RapportError(Exception):
	"""Base class for domain errors that map onto the HTTP error envelope."""

	code: str = "INTERNAL_SERVER_ERROR"
	status_code: int = 500
	message: str = "An unexpected error occurred"

	def __init__(self, code: Optional[str] = None, message: Optional[str] = None) -> None:
		if code:
			self.code = code
		if message:
			self.message = message
		super().__init__(self.message)


class ValidationFailed(RapportError):
	code = "VALIDATION_ERROR"
	status_code = 400
	message = "Request validation failed"


class NotFound(RapportError):
	code = "NOT_FOUND"
	status_code = 404
	message = "Resource not found"


class Forbidden(RapportError):
	code = "FORBIDDEN"
	status_code = 403
	message = "You are not allowed to perform this action"


class Conflict(RapportError):
	code = "CONFLICT"
	status_code = 409
	message = "Resource already exists"


class Locked(RapportError):
	"""A communication capability is not unlocked for this pair."""

	code = "LOCKED"
	status_code = 403
	message = "This capability is locked"
