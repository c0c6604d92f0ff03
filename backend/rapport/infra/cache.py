"""Read-through cache for profiles, friendship existence and nearby results.

The cache is never authoritative: every failure is logged, counted and
reported to the caller as a miss.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from redis.asyncio import Redis

from rapport.domain.ids import UserId, ordered_pair
from rapport.obs import metrics as obs_metrics
from rapport.settings import settings

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
	"""Keyed TTL cache over Redis with explicit invalidation helpers."""

	def __init__(
		self,
		redis: Redis,
		*,
		prefix: str = "",
		profile_ttl: int = 300,
		friendship_ttl: int = 600,
		nearby_ttl: int = 30,
		scan_batch_size: int = 100,
	) -> None:
		self._redis = redis
		self._prefix = prefix
		self.profile_ttl = profile_ttl
		self.friendship_ttl = friendship_ttl
		self.nearby_ttl = nearby_ttl
		self._batch = max(1, scan_batch_size)

	@classmethod
	def from_settings(cls, redis: Redis) -> "CacheService":
		return cls(
			redis,
			prefix=settings.cache_key_prefix,
			profile_ttl=settings.cache_profile_ttl_seconds,
			friendship_ttl=settings.cache_friendship_ttl_seconds,
			nearby_ttl=settings.cache_nearby_ttl_seconds,
			scan_batch_size=settings.cache_scan_batch_size,
		)

	@property
	def redis(self) -> Redis:
		return self._redis

	# --- keys -------------------------------------------------------------

	def friendship_key(self, a: UserId, b: UserId) -> str:
		low, high = ordered_pair(a, b)
		return f"{self._prefix}friendship:{low}:{high}"

	def profile_key(self, user_id: UserId) -> str:
		return f"{self._prefix}profile:{user_id}"

	def nearby_key(self, lat: float, lng: float, radius: float) -> str:
		return f"{self._prefix}nearby:{lat:.4f}:{lng:.4f}:{radius}"

	# --- primitives -------------------------------------------------------

	async def get_json(self, key: str) -> Optional[Any]:
		try:
			raw = await self._redis.get(key)
		except Exception:
			obs_metrics.cache_error("get")
			LOGGER.warning("cache get failed", extra={"key": key}, exc_info=True)
			return None
		if raw is None:
			return None
		if isinstance(raw, bytes):
			raw = raw.decode("utf-8")
		try:
			return json.loads(raw)
		except json.JSONDecodeError:
			LOGGER.warning("dropping undecodable cache entry", extra={"key": key})
			await self.delete(key)
			return None

	async def set_json(self, key: str, value: Any, ttl: int) -> None:
		try:
			await self._redis.setex(key, ttl, json.dumps(value, default=str))
		except Exception:
			obs_metrics.cache_error("set")
			LOGGER.warning("cache set failed", extra={"key": key}, exc_info=True)

	async def delete(self, *keys: str) -> None:
		if not keys:
			return
		try:
			await self._redis.delete(*keys)
		except Exception:
			obs_metrics.cache_error("delete")
			LOGGER.warning("cache delete failed", extra={"keys": list(keys)}, exc_info=True)

	async def delete_pattern(self, pattern: str) -> int:
		"""Delete keys matching a glob pattern with incremental SCAN and batched DEL."""
		deleted = 0
		cursor = 0
		try:
			while True:
				cursor, keys = await self._redis.scan(cursor=cursor, match=pattern, count=self._batch)
				for start in range(0, len(keys), self._batch):
					batch = keys[start : start + self._batch]
					deleted += int(await self._redis.delete(*batch) or 0)
				if int(cursor) == 0:
					break
		except Exception:
			obs_metrics.cache_error("delete_pattern")
			LOGGER.warning("cache pattern delete failed", extra={"pattern": pattern}, exc_info=True)
		return deleted

	async def read_through(
		self,
		key: str,
		ttl: int,
		loader: Callable[[], Awaitable[Optional[T]]],
		*,
		namespace: str,
	) -> Optional[T]:
		"""Return the cached value, or load, store and return it on a miss.

		``None`` results from the loader are not cached.
		"""
		cached = await self.get_json(key)
		if cached is not None:
			obs_metrics.cache_hit(namespace)
			return cached
		obs_metrics.cache_miss(namespace)
		value = await loader()
		if value is not None:
			await self.set_json(key, value, ttl)
		return value

	# --- friendship existence --------------------------------------------

	async def get_friendship_exists(self, a: UserId, b: UserId) -> Optional[bool]:
		cached = await self.get_json(self.friendship_key(a, b))
		if cached is None:
			obs_metrics.cache_miss("friendship")
			return None
		obs_metrics.cache_hit("friendship")
		return bool(cached)

	async def set_friendship_exists(self, a: UserId, b: UserId, exists: bool) -> None:
		await self.set_json(self.friendship_key(a, b), bool(exists), self.friendship_ttl)

	async def invalidate_friendship(self, a: UserId, b: UserId) -> None:
		await self.delete(self.friendship_key(a, b))

	async def invalidate_user_friendships(self, user_id: UserId) -> int:
		return await self.delete_pattern(f"{self._prefix}friendship:*{user_id}*")

	# --- profiles ---------------------------------------------------------

	async def get_profile(self, user_id: UserId) -> Optional[dict]:
		cached = await self.get_json(self.profile_key(user_id))
		if cached is None:
			obs_metrics.cache_miss("profile")
			return None
		obs_metrics.cache_hit("profile")
		return cached

	async def set_profile(self, user_id: UserId, payload: dict) -> None:
		await self.set_json(self.profile_key(user_id), payload, self.profile_ttl)

	async def invalidate_profile(self, user_id: UserId) -> None:
		await self.delete(self.profile_key(user_id))

	# --- nearby -----------------------------------------------------------

	async def get_nearby(self, lat: float, lng: float, radius: float) -> Optional[list]:
		return await self.get_json(self.nearby_key(lat, lng, radius))

	async def set_nearby(self, lat: float, lng: float, radius: float, results: list) -> None:
		await self.set_json(self.nearby_key(lat, lng, radius), results, self.nearby_ttl)
