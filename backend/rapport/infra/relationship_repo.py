"""PostgreSQL persistence for connection requests and friendships."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple
from uuid import UUID, uuid4

import asyncpg

from rapport.domain.ids import UserId
from rapport.domain.relationships.models import (
    CommunicationLevel,
    ConnectionRequest,
    Friendship,
    RequestStatus,
)
from rapport.domain.relationships.repository import RelationshipRepository

_REQUEST_COLUMNS = "id, sender_id, receiver_id, status, created_at, responded_at"
_FRIENDSHIP_COLUMNS = (
    "id, user1_id, user2_id, established_at, communication_level, interaction_count, blocked, blocked_by"
)
_PAIR_MATCH = "((user1_id = $1 AND user2_id = $2) OR (user1_id = $2 AND user2_id = $1))"


def _as_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _row_to_request(row: asyncpg.Record) -> ConnectionRequest:
    return ConnectionRequest(
        id=str(row["id"]),
        sender_id=UserId(str(row["sender_id"])),
        receiver_id=UserId(str(row["receiver_id"])),
        status=RequestStatus(str(row["status"])),
        created_at=row["created_at"],
        responded_at=row["responded_at"],
    )


def _row_to_friendship(row: asyncpg.Record) -> Friendship:
    return Friendship(
        id=str(row["id"]),
        user1_id=UserId(str(row["user1_id"])),
        user2_id=UserId(str(row["user2_id"])),
        established_at=row["established_at"],
        communication_level=CommunicationLevel(str(row["communication_level"])),
        interaction_count=int(row["interaction_count"]),
        blocked=bool(row["blocked"]),
        blocked_by=UserId(str(row["blocked_by"])) if row["blocked_by"] is not None else None,
    )


class PostgresRelationshipRepository(RelationshipRepository):
    """Stores requests in connection_requests and friendships in friendships."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get_request(self, request_id: str) -> ConnectionRequest | None:
        key = _as_uuid(request_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_REQUEST_COLUMNS} FROM connection_requests WHERE id = $1",
            key,
        )
        return _row_to_request(row) if row else None

    async def find_request(self, sender_id: UserId, receiver_id: UserId) -> ConnectionRequest | None:
        row = await self._pool.fetchrow(
            f"SELECT {_REQUEST_COLUMNS} FROM connection_requests WHERE sender_id = $1 AND receiver_id = $2",
            sender_id,
            receiver_id,
        )
        return _row_to_request(row) if row else None

    async def create_request(self, sender_id: UserId, receiver_id: UserId, now: datetime) -> ConnectionRequest | None:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO connection_requests (id, sender_id, receiver_id, status, created_at)
            VALUES ($1, $2, $3, 'pending', $4)
            ON CONFLICT (sender_id, receiver_id) DO NOTHING
            RETURNING {_REQUEST_COLUMNS}
            """,
            uuid4(),
            sender_id,
            receiver_id,
            now,
        )
        return _row_to_request(row) if row else None

    async def reopen_request(self, request_id: str, now: datetime) -> ConnectionRequest | None:
        key = _as_uuid(request_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"""
            UPDATE connection_requests
            SET status = 'pending', created_at = $2, responded_at = NULL
            WHERE id = $1 AND status <> 'pending'
            RETURNING {_REQUEST_COLUMNS}
            """,
            key,
            now,
        )
        return _row_to_request(row) if row else None

    async def transition_request(
        self,
        request_id: str,
        *,
        expected: RequestStatus,
        status: RequestStatus,
        responded_at: datetime,
    ) -> ConnectionRequest | None:
        key = _as_uuid(request_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"""
            UPDATE connection_requests
            SET status = $3, responded_at = $4
            WHERE id = $1 AND status = $2
            RETURNING {_REQUEST_COLUMNS}
            """,
            key,
            expected.value,
            status.value,
            responded_at,
        )
        return _row_to_request(row) if row else None

    async def delete_pending_request(self, request_id: str) -> bool:
        key = _as_uuid(request_id)
        if key is None:
            return False
        result = await self._pool.execute(
            "DELETE FROM connection_requests WHERE id = $1 AND status = 'pending'",
            key,
        )
        return result.endswith(" 1")

    async def list_requests(
        self,
        user_id: UserId,
        *,
        direction: str,
        status: RequestStatus = RequestStatus.PENDING,
    ) -> Sequence[ConnectionRequest]:
        column = "receiver_id" if direction == "received" else "sender_id"
        rows = await self._pool.fetch(
            f"""
            SELECT {_REQUEST_COLUMNS}
            FROM connection_requests
            WHERE {column} = $1 AND status = $2
            ORDER BY created_at DESC
            """,
            user_id,
            status.value,
        )
        return [_row_to_request(row) for row in rows]

    async def get_friendship(self, friendship_id: str) -> Friendship | None:
        key = _as_uuid(friendship_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"SELECT {_FRIENDSHIP_COLUMNS} FROM friendships WHERE id = $1",
            key,
        )
        return _row_to_friendship(row) if row else None

    async def find_friendship(self, a: UserId, b: UserId) -> Friendship | None:
        row = await self._pool.fetchrow(
            f"SELECT {_FRIENDSHIP_COLUMNS} FROM friendships WHERE {_PAIR_MATCH} LIMIT 1",
            a,
            b,
        )
        return _row_to_friendship(row) if row else None

    async def create_friendship_if_absent(
        self,
        user1_id: UserId,
        user2_id: UserId,
        *,
        level: CommunicationLevel,
        now: datetime,
    ) -> Tuple[Friendship, bool]:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO friendships (id, user1_id, user2_id, established_at, communication_level, interaction_count)
            VALUES ($1, $2, $3, $4, $5, 0)
            ON CONFLICT ((LEAST(user1_id, user2_id)), (GREATEST(user1_id, user2_id))) DO NOTHING
            RETURNING {_FRIENDSHIP_COLUMNS}
            """,
            uuid4(),
            user1_id,
            user2_id,
            now,
            level.value,
        )
        if row is not None:
            return _row_to_friendship(row), True
        existing = await self.find_friendship(user1_id, user2_id)
        if existing is None:  # pragma: no cover - row deleted between insert and read
            raise RuntimeError("friendship vanished after conflicting insert")
        return existing, False

    async def list_friendships(self, user_id: UserId, *, include_blocked: bool = False) -> Sequence[Friendship]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_FRIENDSHIP_COLUMNS}
            FROM friendships
            WHERE (user1_id = $1 OR user2_id = $1) AND ($2 OR blocked = FALSE)
            ORDER BY established_at DESC
            """,
            user_id,
            include_blocked,
        )
        return [_row_to_friendship(row) for row in rows]

    async def delete_friendship(self, friendship_id: str) -> bool:
        key = _as_uuid(friendship_id)
        if key is None:
            return False
        result = await self._pool.execute("DELETE FROM friendships WHERE id = $1", key)
        return result.endswith(" 1")

    async def set_blocked(
        self,
        friendship_id: str,
        *,
        blocked: bool,
        blocked_by: UserId | None,
    ) -> Friendship | None:
        key = _as_uuid(friendship_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"""
            UPDATE friendships
            SET blocked = $2, blocked_by = CASE WHEN $2 THEN $3 ELSE NULL END
            WHERE id = $1
            RETURNING {_FRIENDSHIP_COLUMNS}
            """,
            key,
            blocked,
            blocked_by,
        )
        return _row_to_friendship(row) if row else None

    async def set_level(
        self,
        friendship_id: str,
        level: CommunicationLevel,
        *,
        expected: CommunicationLevel | None = None,
    ) -> Friendship | None:
        key = _as_uuid(friendship_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"""
            UPDATE friendships
            SET communication_level = $2
            WHERE id = $1 AND ($3::text IS NULL OR communication_level = $3::text)
            RETURNING {_FRIENDSHIP_COLUMNS}
            """,
            key,
            level.value,
            expected.value if expected is not None else None,
        )
        return _row_to_friendship(row) if row else None

    async def increment_interaction(self, a: UserId, b: UserId, *, voice_threshold: int) -> Friendship | None:
        row = await self._pool.fetchrow(
            f"""
            UPDATE friendships
            SET interaction_count = interaction_count + 1,
                communication_level = CASE
                    WHEN communication_level = 'chat' AND interaction_count + 1 >= $3 THEN 'voice'
                    ELSE communication_level
                END
            WHERE {_PAIR_MATCH} AND blocked = FALSE
            RETURNING {_FRIENDSHIP_COLUMNS}
            """,
            a,
            b,
            voice_threshold,
        )
        return _row_to_friendship(row) if row else None
