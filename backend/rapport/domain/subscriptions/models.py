"""Domain models for the subscription ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from rapport.domain.ids import UserId


class SubscriptionPlan(str, Enum):
	FREE = "free"
	PREMIUM = "premium"


class SubscriptionStatus(str, Enum):
	ACTIVE = "active"
	CANCELLED = "cancelled"
	EXPIRED = "expired"
	PAST_DUE = "past_due"


@dataclass(slots=True)
class Subscription:
	id: str
	user_id: UserId
	plan: SubscriptionPlan
	status: SubscriptionStatus
	start_date: datetime
	end_date: Optional[datetime] = None
	external_customer_id: Optional[str] = None
	external_subscription_id: Optional[str] = None
	updated_at: Optional[datetime] = None

	@property
	def is_active_premium(self) -> bool:
		return self.plan == SubscriptionPlan.PREMIUM and self.status == SubscriptionStatus.ACTIVE


def is_active_premium(subscription: Optional[Subscription]) -> bool:
	return subscription is not None and subscription.is_active_premium
