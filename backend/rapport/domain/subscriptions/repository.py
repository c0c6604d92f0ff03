"""Subscription ledger persistence contract plus in-memory implementation."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Optional, Protocol

from rapport.domain.ids import UserId
from rapport.domain.subscriptions.models import Subscription


class SubscriptionRepository(Protocol):
	async def get_by_user(self, user_id: UserId) -> Subscription | None:
		...

	async def get_by_external_id(self, external_subscription_id: str) -> Subscription | None:
		...

	async def create_if_absent(self, subscription: Subscription) -> Subscription:
		"""Insert unless the user already has a row; return the stored row."""
		...

	async def save(self, subscription: Subscription) -> Subscription:
		...


class InMemorySubscriptionRepository(SubscriptionRepository):
	def __init__(self) -> None:
		self.rows: Dict[UserId, Subscription] = {}

	async def get_by_user(self, user_id: UserId) -> Subscription | None:
		row = self.rows.get(user_id)
		return replace(row) if row else None

	async def get_by_external_id(self, external_subscription_id: str) -> Subscription | None:
		for row in self.rows.values():
			if row.external_subscription_id == external_subscription_id:
				return replace(row)
		return None

	async def create_if_absent(self, subscription: Subscription) -> Subscription:
		existing: Optional[Subscription] = self.rows.get(subscription.user_id)
		if existing is None:
			self.rows[subscription.user_id] = replace(subscription)
			return replace(subscription)
		return replace(existing)

	async def save(self, subscription: Subscription) -> Subscription:
		self.rows[subscription.user_id] = replace(subscription)
		return replace(subscription)
