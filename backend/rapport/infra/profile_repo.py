"""PostgreSQL persistence for the profile read model."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

import asyncpg

from rapport.domain.ids import UserId
from rapport.domain.profiles.models import EDITABLE_FIELDS, Profile
from rapport.domain.profiles.repository import ProfileRepository

_COLUMNS = (
    "user_id, name, username, age, gender, religion, phone, place, skills, profession, photos, bio, "
    "college, company, website_url, achievements, verified, created_at, updated_at"
)


def _row_to_profile(row: asyncpg.Record) -> Profile:
    return Profile(
        user_id=UserId(str(row["user_id"])),
        name=str(row["name"]),
        username=row["username"],
        age=row["age"],
        gender=row["gender"],
        religion=row["religion"],
        phone=row["phone"],
        place=row["place"],
        skills=list(row["skills"] or []),
        profession=row["profession"],
        photos=list(row["photos"] or []),
        bio=row["bio"],
        college=row["college"],
        company=row["company"],
        website_url=row["website_url"],
        achievements=list(row["achievements"] or []),
        verified=bool(row["verified"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresProfileRepository(ProfileRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, user_id: UserId) -> Profile | None:
        row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM profiles WHERE user_id = $1", user_id)
        return _row_to_profile(row) if row else None

    async def get_many(self, user_ids: Iterable[UserId]) -> List[Profile]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        rows = await self._pool.fetch(
            f"SELECT {_COLUMNS} FROM profiles WHERE user_id = ANY($1::text[])",
            ids,
        )
        by_id = {str(row["user_id"]): _row_to_profile(row) for row in rows}
        return [by_id[uid] for uid in ids if uid in by_id]

    async def upsert(self, profile: Profile) -> Profile:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO profiles ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17, $18, $19)
            ON CONFLICT (user_id) DO UPDATE SET
                name = EXCLUDED.name,
                username = EXCLUDED.username,
                age = EXCLUDED.age,
                gender = EXCLUDED.gender,
                religion = EXCLUDED.religion,
                phone = EXCLUDED.phone,
                place = EXCLUDED.place,
                skills = EXCLUDED.skills,
                profession = EXCLUDED.profession,
                photos = EXCLUDED.photos,
                bio = EXCLUDED.bio,
                college = EXCLUDED.college,
                company = EXCLUDED.company,
                website_url = EXCLUDED.website_url,
                achievements = EXCLUDED.achievements,
                verified = EXCLUDED.verified,
                updated_at = EXCLUDED.updated_at
            RETURNING {_COLUMNS}
            """,
            profile.user_id,
            profile.name,
            profile.username,
            profile.age,
            profile.gender,
            profile.religion,
            profile.phone,
            profile.place,
            list(profile.skills),
            profile.profession,
            list(profile.photos),
            profile.bio,
            profile.college,
            profile.company,
            profile.website_url,
            list(profile.achievements),
            profile.verified,
            profile.created_at,
            profile.updated_at,
        )
        if row is None:  # pragma: no cover - upsert always returns a row
            raise RuntimeError("Failed to upsert profile")
        return _row_to_profile(row)

    async def update(self, user_id: UserId, changes: Mapping[str, Any]) -> Profile | None:
        columns = [name for name in changes if name in EDITABLE_FIELDS]
        if not columns:
            return await self.get(user_id)
        assignments = ", ".join(f"{name} = ${idx}" for idx, name in enumerate(columns, start=2))
        row = await self._pool.fetchrow(
            f"""
            UPDATE profiles
            SET {assignments}, updated_at = now()
            WHERE user_id = $1
            RETURNING {_COLUMNS}
            """,
            user_id,
            *[changes[name] for name in columns],
        )
        return _row_to_profile(row) if row else None
