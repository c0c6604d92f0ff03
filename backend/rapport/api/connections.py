"""REST API surface for connection requests."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from rapport.container import ServiceContainer, get_container
from rapport.domain.errors import ValidationFailed
from rapport.domain.ids import normalize_user_id
from rapport.domain.relationships.schemas import (
	AcceptResponse,
	CancelResponse,
	ConnectionRequestOut,
	ConnectionSendRequest,
	ConnectionSendResponse,
	FriendshipOut,
	PendingRequestsOut,
	RequestActionResponse,
)
from rapport.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/connections")


@router.post("", response_model=ConnectionSendResponse, status_code=status.HTTP_201_CREATED)
async def send_request(
	payload: ConnectionSendRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> ConnectionSendResponse:
	if not payload.receiver_id:
		raise ValidationFailed(message="Receiver ID is required")
	request = await container.workflow.send(auth_user.id, normalize_user_id(payload.receiver_id))
	return ConnectionSendResponse(
		message="Connection request sent successfully",
		request=ConnectionRequestOut.from_domain(request),
	)


@router.get("/pending", response_model=PendingRequestsOut)
async def pending_requests(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> PendingRequestsOut:
	return PendingRequestsOut.from_domain(await container.workflow.list_pending(auth_user.id))


@router.put("/{request_id}/accept", response_model=AcceptResponse)
async def accept_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> AcceptResponse:
	result = await container.workflow.accept(request_id, auth_user.id)
	message = "Connection request accepted" if result.created else "Connection request accepted, friendship already exists"
	return AcceptResponse(
		message=message,
		request=ConnectionRequestOut.from_domain(result.request),
		friendship=FriendshipOut.from_domain(result.friendship),
	)


@router.put("/{request_id}/decline", response_model=RequestActionResponse)
async def decline_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> RequestActionResponse:
	request = await container.workflow.decline(request_id, auth_user.id)
	return RequestActionResponse(
		message="Connection request declined",
		request=ConnectionRequestOut.from_domain(request),
	)


@router.delete("/{request_id}", response_model=CancelResponse)
async def cancel_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> CancelResponse:
	request = await container.workflow.cancel(request_id, auth_user.id)
	return CancelResponse(message="Connection request cancelled", request_id=request.id)
