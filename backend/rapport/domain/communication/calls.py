"""Call-session bookkeeping and the call initiation policy."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Protocol
from uuid import uuid4

from rapport.domain.communication.exceptions import (
	CallNotFound,
	InvalidCallType,
	VideoLocked,
	voice_locked,
)
from rapport.domain.communication.gate import CommunicationGate
from rapport.domain.errors import Forbidden, ValidationFailed
from rapport.domain.ids import UserId
from rapport.domain.profiles.repository import ProfileRepository
from rapport.domain.relationships.notifications import (
	NOTIFICATION_EVENT,
	Notifier,
	deliver,
	display_names,
	notification,
)
from rapport.obs import metrics as obs_metrics

CALL_INCOMING_EVENT = "call:incoming"
CALL_ENDED_EVENT = "call:ended"


class CallType(str, Enum):
	VOICE = "voice"
	VIDEO = "video"


class CallStatus(str, Enum):
	RINGING = "ringing"
	ACTIVE = "active"
	ENDED = "ended"


@dataclass(slots=True)
class CallSession:
	id: str
	type: CallType
	initiator_id: UserId
	participant_ids: List[UserId]
	status: CallStatus
	created_at: datetime
	started_at: Optional[datetime] = None
	ended_at: Optional[datetime] = None

	def involves(self, user_id: UserId) -> bool:
		return user_id == self.initiator_id or user_id in self.participant_ids


class CallRepository(Protocol):
	async def create(self, session: CallSession) -> CallSession:
		...

	async def get(self, call_id: str) -> CallSession | None:
		...

	async def mark_ended(self, call_id: str, ended_at: datetime) -> CallSession | None:
		...


class InMemoryCallRepository(CallRepository):
	def __init__(self) -> None:
		self.rows: Dict[str, CallSession] = {}

	async def create(self, session: CallSession) -> CallSession:
		self.rows[session.id] = replace(session, participant_ids=list(session.participant_ids))
		return session

	async def get(self, call_id: str) -> CallSession | None:
		row = self.rows.get(call_id)
		return replace(row, participant_ids=list(row.participant_ids)) if row else None

	async def mark_ended(self, call_id: str, ended_at: datetime) -> CallSession | None:
		row = self.rows.get(call_id)
		if row is None:
			return None
		if row.status != CallStatus.ENDED:
			row.status = CallStatus.ENDED
			row.ended_at = ended_at
		return replace(row, participant_ids=list(row.participant_ids))


def parse_call_type(raw: object) -> CallType:
	if not raw:
		raise ValidationFailed(message="Participant ID and call type are required")
	try:
		return CallType(str(raw).lower())
	except ValueError:
		raise InvalidCallType() from None


class CallService:
	def __init__(
		self,
		gate: CommunicationGate,
		calls: CallRepository,
		profiles: ProfileRepository,
		notifier: Notifier,
	) -> None:
		self._gate = gate
		self._calls = calls
		self._profiles = profiles
		self._notifier = notifier

	async def initiate(self, initiator_id: UserId, participant_id: UserId, call_type: CallType) -> CallSession:
		if not participant_id:
			raise ValidationFailed(message="Participant ID and call type are required")
		if participant_id == initiator_id:
			raise ValidationFailed(message="You cannot call yourself")

		# Voice eligibility is the floor for both call types.
		if not await self._gate.is_voice_unlocked(initiator_id, participant_id):
			obs_metrics.inc_call(call_type.value, "voice_locked")
			raise voice_locked(self._gate.voice_threshold)
		if call_type == CallType.VIDEO and not await self._gate.is_video_unlocked(initiator_id, participant_id):
			obs_metrics.inc_call(call_type.value, "video_locked")
			raise VideoLocked()

		session = await self._calls.create(
			CallSession(
				id=str(uuid4()),
				type=call_type,
				initiator_id=initiator_id,
				participant_ids=[initiator_id, participant_id],
				status=CallStatus.RINGING,
				created_at=datetime.now(timezone.utc),
			)
		)
		obs_metrics.inc_call(call_type.value, "ok")

		initiator_name = (await display_names(self._profiles, [initiator_id])).get(initiator_id)
		await deliver(
			self._notifier,
			participant_id,
			CALL_INCOMING_EVENT,
			{
				"callId": session.id,
				"type": call_type.value,
				"initiatorId": initiator_id,
				"initiatorName": initiator_name,
			},
		)
		await deliver(
			self._notifier,
			participant_id,
			NOTIFICATION_EVENT,
			notification(
				"call",
				f"Incoming {call_type.value.capitalize()} Call",
				f"{initiator_name or 'Someone'} is calling you",
				{"callId": session.id, "callType": call_type.value, "initiatorId": initiator_id},
			),
		)
		return session

	async def end(self, call_id: str, acting_user_id: UserId) -> CallSession:
		session = await self._calls.get(call_id)
		if session is None:
			raise CallNotFound()
		if not session.involves(acting_user_id):
			raise Forbidden(message="You are not a participant in this call")
		if session.status == CallStatus.ENDED:
			return session
		ended = await self._calls.mark_ended(call_id, datetime.now(timezone.utc))
		if ended is None:
			raise CallNotFound()
		for user_id in ended.participant_ids:
			if user_id != acting_user_id:
				await deliver(
					self._notifier,
					user_id,
					CALL_ENDED_EVENT,
					{"callId": ended.id, "endedBy": acting_user_id},
				)
		return ended
