"""Billing collaborator contract.

Real payment processing lives outside this service. The gateway only hands
out external customer and subscription ids; plan and status changes come
back through webhook events.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import uuid4

from rapport.domain.ids import UserId

LOGGER = logging.getLogger(__name__)


class BillingGateway(Protocol):
	async def create_customer(self, user_id: UserId) -> str:
		...

	async def create_subscription(self, customer_id: str, *, payment_method_id: str | None = None) -> str:
		...

	async def cancel_subscription(self, subscription_id: str) -> None:
		...


class MockBillingGateway(BillingGateway):
	"""Issues synthetic ids; used until a real processor is wired in."""

	def __init__(self) -> None:
		self.cancelled: list[str] = []

	async def create_customer(self, user_id: UserId) -> str:
		return f"cus_mock_{uuid4().hex[:16]}"

	async def create_subscription(self, customer_id: str, *, payment_method_id: str | None = None) -> str:
		return f"sub_mock_{uuid4().hex[:16]}"

	async def cancel_subscription(self, subscription_id: str) -> None:
		LOGGER.info("mock billing cancel", extra={"subscription_id": subscription_id})
		self.cancelled.append(subscription_id)
