"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rapport.api import calls, connections, friends, internal, ops, profiles, subscriptions
from rapport.api.errors import install_error_handlers
from rapport.container import build_in_memory, build_postgres
from rapport.domain.relationships.sockets import SocialNamespace, SocketNotifier
from rapport.infra import postgres
from rapport.infra import redis as redis_infra
from rapport.obs import init as obs_init
from rapport.obs import logging as obs_logging
from rapport.obs import metrics as obs_metrics
from rapport.settings import settings

logger = obs_logging.get_logger("rapport.startup")

social_namespace = SocialNamespace()


@asynccontextmanager
async def lifespan(app: FastAPI):
	redis_client = redis_infra.open_client()
	notifier = SocketNotifier(social_namespace)
	if settings.store_backend == "memory":
		pool = None
		container = build_in_memory(redis_client, notifier=notifier)
	else:
		pool = await postgres.init_pool()
		obs_metrics.mark_postgres(True)
		container = build_postgres(pool, redis_client, notifier=notifier)
	app.state.container = container
	logger.info("service started", extra={"store_backend": settings.store_backend})
	try:
		yield
	finally:
		app.state.container = None
		await postgres.close_pool()
		await redis_infra.close_client()


app = FastAPI(title="Rapport Relationships API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins or [])
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else ["https://app.rapport.example"]

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = ["https://app.rapport.example"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
sio.register_namespace(social_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

app.include_router(connections.router, tags=["connections"])
app.include_router(friends.router, tags=["friends"])
app.include_router(calls.router, tags=["calls"])
app.include_router(profiles.router, tags=["profiles"])
app.include_router(subscriptions.router, tags=["subscriptions"])
app.include_router(internal.router, tags=["internal"])
app.include_router(ops.router)
