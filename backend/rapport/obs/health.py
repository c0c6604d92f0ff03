"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Optional, Tuple

import asyncpg

from rapport.obs import metrics
from rapport.settings import settings

LOGGER = logging.getLogger(__name__)


async def _redis_status(redis, timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis.ping(), timeout=timeout)
		latency = perf_counter() - start
		metrics.mark_redis(True, latency_seconds=latency)
		return {"ok": True, "latency_ms": round(latency * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_redis(False)
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return {"ok": False, "error": str(exc)}


async def _postgres_status(pool: Optional[asyncpg.Pool], timeout: float = 0.3) -> Dict[str, Any]:
	if pool is None:
		return {"ok": True, "skipped": "memory_store"}
	start = perf_counter()
	try:
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
		latency = perf_counter() - start
		metrics.mark_postgres(True, latency_seconds=latency)
		return {"ok": True, "latency_ms": round(latency * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_postgres(False)
		LOGGER.warning("Postgres readiness query failed", exc_info=True)
		return {"ok": False, "error": str(exc)}


async def _migration_status(pool: Optional[asyncpg.Pool], min_version: str) -> Dict[str, Any]:
	if pool is None:
		return {"ok": True, "skipped": "memory_store"}
	try:
		async with pool.acquire() as conn:
			version = await conn.fetchval(
				"SELECT version FROM schema_migrations ORDER BY version DESC LIMIT 1"
			)
	except Exception as exc:  # pragma: no cover - optional table
		return {"ok": False, "error": str(exc)}
	if version is None:
		return {"ok": False, "error": "no_migrations"}
	current = str(version)
	return {"ok": current >= min_version, "version": current, "required": min_version}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(redis, pool: Optional[asyncpg.Pool]) -> Tuple[int, Dict[str, Any]]:
	redis_state = await _redis_status(redis)
	postgres_state = await _postgres_status(pool)
	migration_state = await _migration_status(pool, settings.health_min_migration)
	ok = redis_state.get("ok") and postgres_state.get("ok") and migration_state.get("ok")
	status_code = 200 if ok else 503
	return (
		status_code,
		{
			"status": "ok" if ok else "degraded",
			"checks": {
				"redis": redis_state,
				"postgres": postgres_state,
				"migrations": migration_state,
			},
		},
	)
