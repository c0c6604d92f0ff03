"""Pydantic schemas for calls, capabilities and interactions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from rapport.domain.communication.calls import CallSession
from rapport.domain.schemas import CamelModel


class CallInitiateRequest(CamelModel):
	participant_id: Optional[str] = None
	type: Optional[str] = None


class CallSessionOut(CamelModel):
	id: str
	type: Literal["voice", "video"]
	initiator_id: str
	participant_ids: List[str]
	status: Literal["ringing", "active", "ended"]
	created_at: datetime
	started_at: Optional[datetime] = None
	ended_at: Optional[datetime] = None

	@classmethod
	def from_domain(cls, session: CallSession) -> "CallSessionOut":
		return cls(
			id=session.id,
			type=session.type.value,
			initiator_id=session.initiator_id,
			participant_ids=list(session.participant_ids),
			status=session.status.value,
			created_at=session.created_at,
			started_at=session.started_at,
			ended_at=session.ended_at,
		)


class CallResponse(CamelModel):
	message: str
	call: CallSessionOut


class CapabilityFlags(CamelModel):
	chat: bool
	voice: bool
	video: bool


class CapabilitiesOut(CamelModel):
	communication_level: Literal["chat", "voice", "video"]
	interaction_count: int
	capabilities: CapabilityFlags

	@classmethod
	def from_domain(cls, payload: Dict[str, Any]) -> "CapabilitiesOut":
		return cls(
			communication_level=payload["communication_level"].value,
			interaction_count=payload["interaction_count"],
			capabilities=CapabilityFlags(**payload["capabilities"]),
		)


class InteractionRequest(CamelModel):
	user_id: str
	friend_id: str
