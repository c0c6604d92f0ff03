"""Service layer for the subscription ledger and its billing webhooks."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional
from uuid import uuid4

from rapport.domain.ids import UserId
from rapport.domain.subscriptions.billing import BillingGateway
from rapport.domain.subscriptions.cascades import CascadeKind, CascadeReport, SubscriptionCascades
from rapport.domain.subscriptions.exceptions import NoSubscription, SubscriptionExists, WebhookError
from rapport.domain.subscriptions.models import (
	Subscription,
	SubscriptionPlan,
	SubscriptionStatus,
)
from rapport.domain.subscriptions.repository import SubscriptionRepository
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


def _now() -> datetime:
	return datetime.now(timezone.utc)


class SubscriptionLedger:
	def __init__(
		self,
		repository: SubscriptionRepository,
		billing: BillingGateway,
		cascades: SubscriptionCascades,
		*,
		period_days: int = 30,
	) -> None:
		self._repo = repository
		self._billing = billing
		self._cascades = cascades
		self._period = timedelta(days=period_days)

	async def get_current(self, user_id: UserId) -> Subscription:
		"""Return the user's row, creating a free/active one on first read."""
		existing = await self._repo.get_by_user(user_id)
		if existing is not None:
			return existing
		now = _now()
		return await self._repo.create_if_absent(
			Subscription(
				id=str(uuid4()),
				user_id=user_id,
				plan=SubscriptionPlan.FREE,
				status=SubscriptionStatus.ACTIVE,
				start_date=now,
				updated_at=now,
			)
		)

	async def has_active(self, user_id: UserId) -> bool:
		row = await self._repo.get_by_user(user_id)
		return row is not None and row.is_active_premium

	async def create_premium(self, user_id: UserId, *, payment_method_id: Optional[str] = None) -> Subscription:
		current = await self.get_current(user_id)
		if current.is_active_premium:
			raise SubscriptionExists()
		customer_id = current.external_customer_id or await self._billing.create_customer(user_id)
		external_id = await self._billing.create_subscription(customer_id, payment_method_id=payment_method_id)
		now = _now()
		upgraded = replace(
			current,
			plan=SubscriptionPlan.PREMIUM,
			status=SubscriptionStatus.ACTIVE,
			start_date=now,
			end_date=now + self._period,
			external_customer_id=customer_id,
			external_subscription_id=external_id,
			updated_at=now,
		)
		saved = await self._repo.save(upgraded)
		obs_metrics.inc_subscription_event("created")
		LOGGER.info("premium subscription created", extra={"subscription_id": saved.id})
		await self._after_transition(current, saved)
		return saved

	async def cancel(self, user_id: UserId) -> Subscription:
		current = await self._repo.get_by_user(user_id)
		if current is None or current.plan == SubscriptionPlan.FREE:
			raise NoSubscription()
		if current.external_subscription_id:
			await self._billing.cancel_subscription(current.external_subscription_id)
		cancelled = replace(
			current,
			plan=SubscriptionPlan.FREE,
			status=SubscriptionStatus.CANCELLED,
			updated_at=_now(),
		)
		saved = await self._repo.save(cancelled)
		obs_metrics.inc_subscription_event("cancelled")
		await self._after_transition(current, saved)
		return saved

	async def handle_billing_event(self, event: Mapping[str, Any]) -> dict:
		"""Apply a billing webhook event. Unknown events and subscriptions are acknowledged."""
		event_type = event.get("type") if isinstance(event, Mapping) else None
		data = event.get("data") if isinstance(event, Mapping) else None
		payload = data.get("object") if isinstance(data, Mapping) else None
		if not isinstance(event_type, str) or not isinstance(payload, Mapping):
			raise WebhookError()

		if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
			external_id = payload.get("id")
		elif event_type in ("invoice.payment_succeeded", "invoice.payment_failed"):
			external_id = payload.get("subscription")
		else:
			LOGGER.info("ignoring billing event", extra={"event_type": event_type})
			return {"received": True}

		if not external_id:
			raise WebhookError(message="Webhook event is missing a subscription id")
		current = await self._repo.get_by_external_id(str(external_id))
		if current is None:
			LOGGER.warning(
				"billing event for unknown subscription",
				extra={"event_type": event_type, "external_subscription_id": str(external_id)},
			)
			return {"received": True}

		updated = self._apply_event(current, event_type, payload)
		if updated != current:
			saved = await self._repo.save(updated)
			obs_metrics.inc_subscription_event(event_type)
			await self._after_transition(current, saved)
		return {"received": True}

	def _apply_event(self, current: Subscription, event_type: str, payload: Mapping[str, Any]) -> Subscription:
		now = _now()
		if event_type == "customer.subscription.updated":
			status = str(payload.get("status") or "")
			if status == "active":
				period_end = payload.get("current_period_end")
				end_date = current.end_date
				if period_end is not None:
					try:
						end_date = datetime.fromtimestamp(int(period_end), tz=timezone.utc)
					except (TypeError, ValueError, OverflowError, OSError):
						raise WebhookError(message="Webhook event has an invalid current_period_end") from None
				return replace(
					current,
					plan=SubscriptionPlan.PREMIUM,
					status=SubscriptionStatus.ACTIVE,
					end_date=end_date,
					updated_at=now,
				)
			if status in ("canceled", "unpaid"):
				return replace(
					current,
					plan=SubscriptionPlan.FREE,
					status=SubscriptionStatus.CANCELLED,
					updated_at=now,
				)
			if status == "past_due":
				return replace(current, status=SubscriptionStatus.PAST_DUE, updated_at=now)
			return current
		if event_type == "customer.subscription.deleted":
			return replace(
				current,
				plan=SubscriptionPlan.FREE,
				status=SubscriptionStatus.CANCELLED,
				updated_at=now,
			)
		if event_type == "invoice.payment_succeeded":
			return replace(
				current,
				plan=SubscriptionPlan.PREMIUM,
				status=SubscriptionStatus.ACTIVE,
				end_date=now + self._period,
				updated_at=now,
			)
		# invoice.payment_failed
		return replace(current, status=SubscriptionStatus.PAST_DUE, updated_at=now)

	async def reconcile(self, user_id: UserId) -> CascadeReport:
		"""Re-run the cascade matching the user's current state."""
		kind = CascadeKind.ACTIVATED if await self.has_active(user_id) else CascadeKind.DEACTIVATED
		return await self._cascades.run(kind, user_id)

	async def _after_transition(self, before: Subscription, after: Subscription) -> Optional[CascadeReport]:
		if after.is_active_premium and not before.is_active_premium:
			kind = CascadeKind.ACTIVATED
		elif before.is_active_premium and not after.is_active_premium:
			kind = CascadeKind.DEACTIVATED
		else:
			return None
		return await self._cascades.run(kind, after.user_id)
