import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from rapport.container import build_in_memory
from rapport.domain.profiles.models import Profile
from rapport.infra import redis as redis_infra
from rapport.main import app
from rapport.settings import settings


class RecordingNotifier:
    """Collects emitted events instead of pushing them to sockets."""

    def __init__(self):
        self.events = []

    async def emit(self, user_id, event, payload):
        self.events.append((user_id, event, payload))

    def for_user(self, user_id, event=None):
        return [
            payload
            for target, name, payload in self.events
            if target == user_id and (event is None or name == event)
        ]


class RecordingChatRooms:
    def __init__(self):
        self.rooms = []

    async def ensure_personal_room(self, a, b):
        self.rooms.append((a, b))


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    client = FakeRedis(decode_responses=True)
    redis_infra.set_redis_client(client)
    try:
        yield client
    finally:
        redis_infra.set_redis_client(None)
        await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
    """Most API tests authenticate via X-User-Id headers, which are only accepted in dev mode."""
    original_env = settings.environment
    settings.environment = "dev"
    try:
        yield
    finally:
        settings.environment = original_env


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def chat_rooms():
    return RecordingChatRooms()


@pytest.fixture
def container(fake_redis, notifier, chat_rooms):
    built = build_in_memory(fake_redis, notifier=notifier, chat_rooms=chat_rooms)
    app.state.container = built
    try:
        yield built
    finally:
        app.state.container = None


@pytest.fixture
def make_profile(container):
    async def _make(user_id, name=None, **fields):
        now = datetime.now(timezone.utc)
        profile = Profile(
            user_id=user_id,
            name=name or user_id.title(),
            created_at=now,
            updated_at=now,
            **fields,
        )
        return await container.profiles.upsert(profile)

    return _make


@pytest.fixture
def befriend(container, make_profile):
    """Create profiles for both users and an accepted friendship between them."""

    async def _befriend(a, b):
        for user_id in (a, b):
            if await container.profiles.get(user_id) is None:
                await make_profile(user_id)
        request = await container.workflow.send(a, b)
        result = await container.workflow.accept(request.id, b)
        return result.friendship

    return _befriend


@pytest.fixture
def make_premium(container):
    async def _premium(user_id):
        return await container.ledger.create_premium(user_id)

    return _premium


@pytest_asyncio.fixture
async def api_client(container):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
