"""REST API surface for call initiation and communication capabilities."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from rapport.container import ServiceContainer, get_container
from rapport.domain.communication.calls import parse_call_type
from rapport.domain.communication.schemas import (
	CallInitiateRequest,
	CallResponse,
	CallSessionOut,
	CapabilitiesOut,
)
from rapport.domain.errors import ValidationFailed
from rapport.domain.ids import normalize_user_id
from rapport.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/calls")


@router.post("", response_model=CallResponse, status_code=status.HTTP_201_CREATED)
async def initiate_call(
	payload: CallInitiateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> CallResponse:
	if not payload.participant_id or not payload.type:
		raise ValidationFailed(message="Participant ID and call type are required")
	call_type = parse_call_type(payload.type)
	session = await container.calls.initiate(auth_user.id, normalize_user_id(payload.participant_id), call_type)
	return CallResponse(message="Call initiated", call=CallSessionOut.from_domain(session))


@router.put("/{call_id}/end", response_model=CallResponse)
async def end_call(
	call_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> CallResponse:
	session = await container.calls.end(call_id, auth_user.id)
	return CallResponse(message="Call ended", call=CallSessionOut.from_domain(session))


@router.get("/capabilities/{friend_id}", response_model=CapabilitiesOut)
async def capabilities(
	friend_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> CapabilitiesOut:
	payload = await container.gate.capabilities(auth_user.id, normalize_user_id(friend_id))
	return CapabilitiesOut.from_domain(payload)
