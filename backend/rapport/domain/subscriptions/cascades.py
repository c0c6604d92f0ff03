"""Replayable jobs that propagate subscription changes onto friendship levels.

Each friendship is compare-and-set against the level that was read, rows
already at their target are skipped, and a failing row is logged and counted
without stopping the batch. Running the same job twice is safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from rapport.domain.communication.gate import CommunicationGate
from rapport.domain.ids import UserId
from rapport.domain.relationships.models import CommunicationLevel, Friendship
from rapport.domain.relationships.repository import RelationshipRepository
from rapport.infra.cache import CacheService
from rapport.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


class CascadeKind(str, Enum):
	ACTIVATED = "activated"
	DEACTIVATED = "deactivated"


@dataclass(slots=True)
class CascadeReport:
	kind: CascadeKind
	user_id: UserId
	scanned: int = 0
	updated: int = 0
	skipped: int = 0
	failed: int = 0
	failed_ids: List[str] = field(default_factory=list)

	@property
	def complete(self) -> bool:
		return self.failed == 0


class SubscriptionCascades:
	def __init__(
		self,
		relationships: RelationshipRepository,
		gate: CommunicationGate,
		cache: CacheService,
	) -> None:
		self._relationships = relationships
		self._gate = gate
		self._cache = cache

	async def run(self, kind: CascadeKind, user_id: UserId) -> CascadeReport:
		if kind == CascadeKind.ACTIVATED:
			return await self.on_activated(user_id)
		return await self.on_deactivated(user_id)

	async def on_activated(self, user_id: UserId) -> CascadeReport:
		"""Raise every live friendship of a premium user to ``video``."""
		report = CascadeReport(kind=CascadeKind.ACTIVATED, user_id=user_id)
		if not await self._gate.has_premium(user_id):
			# Premium lapsed before the job ran; nothing to grant.
			LOGGER.info("activation cascade skipped, user not premium", extra={"target_user": user_id})
			return report
		for friendship in await self._relationships.list_friendships(user_id):
			report.scanned += 1
			if friendship.communication_level == CommunicationLevel.VIDEO:
				self._record(report, "skipped")
				continue
			await self._apply(report, friendship, CommunicationLevel.VIDEO)
		await self._invalidate(report)
		self._log(report)
		return report

	async def on_deactivated(self, user_id: UserId) -> CascadeReport:
		"""Downgrade ``video`` friendships unless the counterpart still has premium."""
		report = CascadeReport(kind=CascadeKind.DEACTIVATED, user_id=user_id)
		if await self._gate.has_premium(user_id):
			LOGGER.info("deactivation cascade skipped, user is premium again", extra={"target_user": user_id})
			return report
		for friendship in await self._relationships.list_friendships(user_id):
			report.scanned += 1
			if friendship.communication_level != CommunicationLevel.VIDEO:
				self._record(report, "skipped")
				continue
			try:
				counterpart_premium = await self._gate.has_premium(friendship.other(user_id))
			except Exception:
				LOGGER.exception("cascade counterpart lookup failed", extra={"friendship_id": friendship.id})
				self._record(report, "failed", friendship.id)
				continue
			if counterpart_premium:
				self._record(report, "skipped")
				continue
			await self._apply(report, friendship, self._gate.fallback_level(friendship))
		await self._invalidate(report)
		self._log(report)
		return report

	async def _apply(self, report: CascadeReport, friendship: Friendship, target: CommunicationLevel) -> None:
		try:
			updated = await self._relationships.set_level(
				friendship.id,
				target,
				expected=friendship.communication_level,
			)
		except Exception:
			LOGGER.exception(
				"cascade level write failed",
				extra={"friendship_id": friendship.id, "target": target.value},
			)
			self._record(report, "failed", friendship.id)
			return
		if updated is None:
			# Row changed or vanished since it was read; a replay picks it up.
			self._record(report, "skipped")
			return
		obs_metrics.inc_level_change(f"cascade_{report.kind.value}", target.value)
		self._record(report, "updated")

	async def _invalidate(self, report: CascadeReport) -> None:
		if report.updated:
			await self._cache.invalidate_user_friendships(report.user_id)

	@staticmethod
	def _record(report: CascadeReport, outcome: str, friendship_id: str | None = None) -> None:
		if outcome == "updated":
			report.updated += 1
		elif outcome == "skipped":
			report.skipped += 1
		else:
			report.failed += 1
			if friendship_id:
				report.failed_ids.append(friendship_id)
		obs_metrics.inc_cascade_record(report.kind.value, outcome)

	@staticmethod
	def _log(report: CascadeReport) -> None:
		level = logging.INFO if report.complete else logging.WARNING
		LOGGER.log(
			level,
			"subscription cascade finished",
			extra={
				"kind": report.kind.value,
				"target_user": report.user_id,
				"scanned": report.scanned,
				"updated": report.updated,
				"skipped": report.skipped,
				"failed": report.failed,
			},
		)
