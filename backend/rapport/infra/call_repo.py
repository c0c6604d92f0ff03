"""PostgreSQL persistence for call-session bookkeeping."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import asyncpg

from rapport.domain.communication.calls import CallRepository, CallSession, CallStatus, CallType
from rapport.domain.ids import UserId

_COLUMNS = "id, type, initiator_id, participant_ids, status, created_at, started_at, ended_at"


def _row_to_call(row: asyncpg.Record) -> CallSession:
    return CallSession(
        id=str(row["id"]),
        type=CallType(str(row["type"])),
        initiator_id=UserId(str(row["initiator_id"])),
        participant_ids=[UserId(str(uid)) for uid in row["participant_ids"] or []],
        status=CallStatus(str(row["status"])),
        created_at=row["created_at"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
    )


def _as_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class PostgresCallRepository(CallRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create(self, session: CallSession) -> CallSession:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO call_sessions (id, type, initiator_id, participant_ids, status, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_COLUMNS}
            """,
            UUID(session.id),
            session.type.value,
            session.initiator_id,
            list(session.participant_ids),
            session.status.value,
            session.created_at,
        )
        if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
            raise RuntimeError("Failed to insert call session")
        return _row_to_call(row)

    async def get(self, call_id: str) -> CallSession | None:
        key = _as_uuid(call_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM call_sessions WHERE id = $1", key)
        return _row_to_call(row) if row else None

    async def mark_ended(self, call_id: str, ended_at: datetime) -> CallSession | None:
        key = _as_uuid(call_id)
        if key is None:
            return None
        row = await self._pool.fetchrow(
            f"""
            UPDATE call_sessions
            SET status = 'ended', ended_at = COALESCE(ended_at, $2)
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            key,
            ended_at,
        )
        return _row_to_call(row) if row else None
