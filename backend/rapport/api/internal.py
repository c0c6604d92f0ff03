"""Internal endpoints for trusted services: interaction counting and cascade replay."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from rapport.container import ServiceContainer, get_container
from rapport.domain.communication.schemas import InteractionRequest
from rapport.domain.ids import normalize_user_id
from rapport.domain.relationships.schemas import FriendshipOut
from rapport.domain.subscriptions.schemas import CascadeReportOut
from rapport.infra.auth import require_roles

router = APIRouter(prefix="/internal", dependencies=[Depends(require_roles("admin", "service"))])


@router.post("/interactions", response_model=FriendshipOut)
async def record_interaction(
	payload: InteractionRequest,
	container: ServiceContainer = Depends(get_container),
) -> FriendshipOut:
	friendship = await container.gate.increment_interaction(
		normalize_user_id(payload.user_id),
		normalize_user_id(payload.friend_id),
	)
	return FriendshipOut.from_domain(friendship)


@router.post("/subscriptions/{user_id}/reconcile", response_model=CascadeReportOut)
async def reconcile_subscription(
	user_id: str,
	container: ServiceContainer = Depends(get_container),
) -> CascadeReportOut:
	report = await container.ledger.reconcile(normalize_user_id(user_id))
	return CascadeReportOut.from_domain(report)
