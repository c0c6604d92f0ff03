"""REST API surface for the subscription ledger and billing webhooks."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request, status

from rapport.container import ServiceContainer, get_container
from rapport.domain.subscriptions.exceptions import WebhookError
from rapport.domain.subscriptions.schemas import (
	SubscriptionCreateRequest,
	SubscriptionOut,
	SubscriptionResponse,
)
from rapport.infra.auth import AuthenticatedUser, get_current_user

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions")


@router.get("/current", response_model=SubscriptionResponse)
async def current_subscription(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> SubscriptionResponse:
	subscription = await container.ledger.get_current(auth_user.id)
	return SubscriptionResponse(subscription=SubscriptionOut.from_domain(subscription))


@router.post("/create", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
	payload: SubscriptionCreateRequest | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> SubscriptionResponse:
	payment_method_id = payload.payment_method_id if payload else None
	subscription = await container.ledger.create_premium(auth_user.id, payment_method_id=payment_method_id)
	return SubscriptionResponse(
		message="Subscription created successfully",
		subscription=SubscriptionOut.from_domain(subscription),
	)


@router.post("/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	container: ServiceContainer = Depends(get_container),
) -> SubscriptionResponse:
	subscription = await container.ledger.cancel(auth_user.id)
	return SubscriptionResponse(
		message="Subscription cancelled successfully",
		subscription=SubscriptionOut.from_domain(subscription),
	)


@router.post("/webhook")
async def billing_webhook(
	request: Request,
	container: ServiceContainer = Depends(get_container),
) -> dict:
	raw = await request.body()
	try:
		event = json.loads(raw or b"{}")
	except json.JSONDecodeError:
		LOGGER.warning("billing webhook with undecodable body")
		raise WebhookError(message="Webhook body is not valid JSON") from None
	return await container.ledger.handle_billing_event(event)
