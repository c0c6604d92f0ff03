"""PostgreSQL persistence for the subscription ledger."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from rapport.domain.ids import UserId
from rapport.domain.subscriptions.models import Subscription, SubscriptionPlan, SubscriptionStatus
from rapport.domain.subscriptions.repository import SubscriptionRepository

_COLUMNS = (
    "id, user_id, plan, status, start_date, end_date, external_customer_id, external_subscription_id, updated_at"
)


def _row_to_subscription(row: asyncpg.Record) -> Subscription:
    return Subscription(
        id=str(row["id"]),
        user_id=UserId(str(row["user_id"])),
        plan=SubscriptionPlan(str(row["plan"])),
        status=SubscriptionStatus(str(row["status"])),
        start_date=row["start_date"],
        end_date=row["end_date"],
        external_customer_id=row["external_customer_id"],
        external_subscription_id=row["external_subscription_id"],
        updated_at=row["updated_at"],
    )


class PostgresSubscriptionRepository(SubscriptionRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get_by_user(self, user_id: UserId) -> Subscription | None:
        row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM subscriptions WHERE user_id = $1", user_id)
        return _row_to_subscription(row) if row else None

    async def get_by_external_id(self, external_subscription_id: str) -> Subscription | None:
        row = await self._pool.fetchrow(
            f"SELECT {_COLUMNS} FROM subscriptions WHERE external_subscription_id = $1",
            external_subscription_id,
        )
        return _row_to_subscription(row) if row else None

    async def create_if_absent(self, subscription: Subscription) -> Subscription:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO subscriptions (id, user_id, plan, status, start_date, end_date, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (user_id) DO NOTHING
            RETURNING {_COLUMNS}
            """,
            UUID(subscription.id),
            subscription.user_id,
            subscription.plan.value,
            subscription.status.value,
            subscription.start_date,
            subscription.end_date,
            subscription.updated_at or subscription.start_date,
        )
        if row is not None:
            return _row_to_subscription(row)
        existing = await self.get_by_user(subscription.user_id)
        if existing is None:  # pragma: no cover - row deleted between insert and read
            raise RuntimeError("subscription vanished after conflicting insert")
        return existing

    async def save(self, subscription: Subscription) -> Subscription:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO subscriptions (
                id, user_id, plan, status, start_date, end_date,
                external_customer_id, external_subscription_id, updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, COALESCE($9, now()))
            ON CONFLICT (user_id) DO UPDATE SET
                plan = EXCLUDED.plan,
                status = EXCLUDED.status,
                start_date = EXCLUDED.start_date,
                end_date = EXCLUDED.end_date,
                external_customer_id = EXCLUDED.external_customer_id,
                external_subscription_id = EXCLUDED.external_subscription_id,
                updated_at = EXCLUDED.updated_at
            RETURNING {_COLUMNS}
            """,
            UUID(subscription.id),
            subscription.user_id,
            subscription.plan.value,
            subscription.status.value,
            subscription.start_date,
            subscription.end_date,
            subscription.external_customer_id,
            subscription.external_subscription_id,
            subscription.updated_at,
        )
        if row is None:  # pragma: no cover - upsert always returns a row
            raise RuntimeError("Failed to save subscription")
        return _row_to_subscription(row)
