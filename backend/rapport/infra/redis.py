"""Redis connection management.

The client is an explicit value opened at startup and handed to the service
container. Tests swap in a FakeRedis instance through the same entry points.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from rapport.settings import settings

_client: Optional[redis.Redis] = None


def open_client(url: Optional[str] = None) -> redis.Redis:
	global _client
	if _client is None:
		_client = redis.from_url(url or settings.redis_url, decode_responses=True)
	return _client


def set_redis_client(client: Optional[redis.Redis]) -> None:
	global _client
	_client = client


def get_redis_client() -> redis.Redis:
	if _client is None:
		return open_client()
	return _client


async def close_client() -> None:
	global _client
	if _client is not None:
		await _client.aclose()
		_client = None
