"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"rapport_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"rapport_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"rapport_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"rapport_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

CONNECTION_REQUESTS = Counter(
	"rapport_connection_requests_total",
	"Connection request transitions",
	["action", "result"],
)

FRIENDSHIPS_CREATED = Counter(
	"rapport_friendships_created_total",
	"Friendships materialised on acceptance",
	["level"],
)

FRIENDSHIP_CHANGES = Counter(
	"rapport_friendship_changes_total",
	"Friendship removals, blocks and unblocks",
	["action"],
)

GATE_CHECKS = Counter(
	"rapport_gate_checks_total",
	"Communication gate decisions",
	["capability", "result"],
)

LEVEL_UPGRADES = Counter(
	"rapport_level_changes_total",
	"Communication level writes",
	["source", "level"],
)

CALLS_INITIATED = Counter(
	"rapport_calls_initiated_total",
	"Call initiation attempts",
	["type", "result"],
)

CASCADE_RECORDS = Counter(
	"rapport_subscription_cascade_records_total",
	"Friendships visited by subscription cascades",
	["kind", "outcome"],
)

SUBSCRIPTION_EVENTS = Counter(
	"rapport_subscription_events_total",
	"Subscription ledger transitions",
	["event"],
)

CACHE_LOOKUPS = Counter(
	"rapport_cache_lookups_total",
	"Cache reads by namespace",
	["namespace", "result"],
)

CACHE_ERRORS = Counter(
	"rapport_cache_errors_total",
	"Cache operations that failed and were treated as misses",
	["operation"],
)

PROFILE_VIEWS = Counter(
	"rapport_profile_views_total",
	"Profile resolutions by access tier",
	["access"],
)

REDIS_UP = Gauge("rapport_redis_up", "Redis availability (1=up)")
REDIS_LATENCY = Histogram("rapport_redis_ping_seconds", "Redis ping latency")
POSTGRES_UP = Gauge("rapport_postgres_up", "Postgres availability (1=up)")
POSTGRES_LATENCY = Histogram("rapport_postgres_ping_seconds", "Postgres ping latency")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_request(action: str, result: str) -> None:
	CONNECTION_REQUESTS.labels(action=action, result=result).inc()


def inc_friendship_created(level: str) -> None:
	FRIENDSHIPS_CREATED.labels(level=level).inc()


def inc_friendship_change(action: str) -> None:
	FRIENDSHIP_CHANGES.labels(action=action).inc()


def inc_gate_check(capability: str, allowed: bool) -> None:
	GATE_CHECKS.labels(capability=capability, result="allowed" if allowed else "locked").inc()


def inc_level_change(source: str, level: str) -> None:
	LEVEL_UPGRADES.labels(source=source, level=level).inc()


def inc_call(call_type: str, result: str) -> None:
	CALLS_INITIATED.labels(type=call_type, result=result).inc()


def inc_cascade_record(kind: str, outcome: str) -> None:
	CASCADE_RECORDS.labels(kind=kind, outcome=outcome).inc()


def inc_subscription_event(event: str) -> None:
	SUBSCRIPTION_EVENTS.labels(event=event).inc()


def cache_hit(namespace: str) -> None:
	CACHE_LOOKUPS.labels(namespace=namespace, result="hit").inc()


def cache_miss(namespace: str) -> None:
	CACHE_LOOKUPS.labels(namespace=namespace, result="miss").inc()


def cache_error(operation: str) -> None:
	CACHE_ERRORS.labels(operation=operation).inc()


def inc_profile_view(access: str) -> None:
	PROFILE_VIEWS.labels(access=access).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
