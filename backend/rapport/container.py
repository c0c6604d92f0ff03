"""Lightweight service container opened at startup and shared by the API routers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import asyncpg
from fastapi import Request
from redis.asyncio import Redis

from rapport.domain.communication.calls import CallRepository, CallService, InMemoryCallRepository
from rapport.domain.communication.gate import CommunicationGate
from rapport.domain.profiles.access import ProfileAccessResolver
from rapport.domain.profiles.repository import InMemoryProfileRepository, ProfileRepository
from rapport.domain.relationships.friends import FriendService
from rapport.domain.relationships.notifications import (
	ChatRoomProvisioner,
	NoopChatRooms,
	NoopNotifier,
	Notifier,
)
from rapport.domain.relationships.repository import InMemoryRelationshipRepository, RelationshipRepository
from rapport.domain.relationships.workflow import ConnectionWorkflow
from rapport.domain.subscriptions.billing import BillingGateway, MockBillingGateway
from rapport.domain.subscriptions.cascades import SubscriptionCascades
from rapport.domain.subscriptions.ledger import SubscriptionLedger
from rapport.domain.subscriptions.repository import InMemorySubscriptionRepository, SubscriptionRepository
from rapport.infra.cache import CacheService
from rapport.infra.call_repo import PostgresCallRepository
from rapport.infra.profile_repo import PostgresProfileRepository
from rapport.infra.relationship_repo import PostgresRelationshipRepository
from rapport.infra.subscription_repo import PostgresSubscriptionRepository
from rapport.settings import settings


@dataclass(slots=True)
class ServiceContainer:
	redis: Redis
	pool: Optional[asyncpg.Pool]
	cache: CacheService
	relationships: RelationshipRepository
	subscriptions: SubscriptionRepository
	profiles: ProfileRepository
	call_sessions: CallRepository
	notifier: Notifier
	chat_rooms: ChatRoomProvisioner
	billing: BillingGateway
	gate: CommunicationGate
	cascades: SubscriptionCascades
	ledger: SubscriptionLedger
	workflow: ConnectionWorkflow
	friends: FriendService
	calls: CallService
	access: ProfileAccessResolver


def build_container(
	redis: Redis,
	*,
	relationships: RelationshipRepository,
	subscriptions: SubscriptionRepository,
	profiles: ProfileRepository,
	call_sessions: CallRepository,
	pool: Optional[asyncpg.Pool] = None,
	notifier: Optional[Notifier] = None,
	chat_rooms: Optional[ChatRoomProvisioner] = None,
	billing: Optional[BillingGateway] = None,
	cache: Optional[CacheService] = None,
) -> ServiceContainer:
	cache = cache or CacheService.from_settings(redis)
	notifier = notifier or NoopNotifier()
	chat_rooms = chat_rooms or NoopChatRooms()
	billing = billing or MockBillingGateway()
	gate = CommunicationGate(
		relationships,
		subscriptions,
		cache,
		voice_threshold=settings.voice_interaction_threshold,
	)
	cascades = SubscriptionCascades(relationships, gate, cache)
	return ServiceContainer(
		redis=redis,
		pool=pool,
		cache=cache,
		relationships=relationships,
		subscriptions=subscriptions,
		profiles=profiles,
		call_sessions=call_sessions,
		notifier=notifier,
		chat_rooms=chat_rooms,
		billing=billing,
		gate=gate,
		cascades=cascades,
		ledger=SubscriptionLedger(
			subscriptions,
			billing,
			cascades,
			period_days=settings.subscription_period_days,
		),
		workflow=ConnectionWorkflow(relationships, profiles, gate, cache, notifier, chat_rooms),
		friends=FriendService(relationships, profiles, cache, gate),
		calls=CallService(gate, call_sessions, profiles, notifier),
		access=ProfileAccessResolver(
			profiles,
			relationships,
			cache,
			mutual_limit=settings.mutual_friends_preview_limit,
		),
	)


def build_in_memory(redis: Redis, **collaborators) -> ServiceContainer:
	return build_container(
		redis,
		relationships=InMemoryRelationshipRepository(),
		subscriptions=InMemorySubscriptionRepository(),
		profiles=InMemoryProfileRepository(),
		call_sessions=InMemoryCallRepository(),
		**collaborators,
	)


def build_postgres(pool: asyncpg.Pool, redis: Redis, **collaborators) -> ServiceContainer:
	return build_container(
		redis,
		pool=pool,
		relationships=PostgresRelationshipRepository(pool),
		subscriptions=PostgresSubscriptionRepository(pool),
		profiles=PostgresProfileRepository(pool),
		call_sessions=PostgresCallRepository(pool),
		**collaborators,
	)


def get_container(request: Request) -> ServiceContainer:
	container = getattr(request.app.state, "container", None)
	if container is None:
		raise RuntimeError("service container is not initialised")
	return container
