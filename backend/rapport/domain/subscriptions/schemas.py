"""Pydantic schemas for the subscription ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from rapport.domain.schemas import CamelModel
from rapport.domain.subscriptions.cascades import CascadeReport
from rapport.domain.subscriptions.models import Subscription


class SubscriptionCreateRequest(CamelModel):
	payment_method_id: Optional[str] = None


class SubscriptionOut(CamelModel):
	id: str
	user_id: str
	plan: Literal["free", "premium"]
	status: Literal["active", "cancelled", "expired", "past_due"]
	start_date: datetime
	end_date: Optional[datetime] = None
	is_active: bool

	@classmethod
	def from_domain(cls, subscription: Subscription) -> "SubscriptionOut":
		return cls(
			id=subscription.id,
			user_id=subscription.user_id,
			plan=subscription.plan.value,
			status=subscription.status.value,
			start_date=subscription.start_date,
			end_date=subscription.end_date,
			is_active=subscription.is_active_premium,
		)


class SubscriptionResponse(CamelModel):
	message: Optional[str] = None
	subscription: SubscriptionOut


class CascadeReportOut(CamelModel):
	kind: Literal["activated", "deactivated"]
	user_id: str
	scanned: int
	updated: int
	skipped: int
	failed: int

	@classmethod
	def from_domain(cls, report: CascadeReport) -> "CascadeReportOut":
		return cls(
			kind=report.kind.value,
			user_id=report.user_id,
			scanned=report.scanned,
			updated=report.updated,
			skipped=report.skipped,
			failed=report.failed,
		)
