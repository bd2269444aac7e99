# portaria/services/tracking_service.py
"""
Visitor tracking: visitor → assigned tokens → location steps, and the
location heatmap over a recent window.

Token histories are loaded concurrently. A token whose history cannot be
loaded is reported with no steps; its siblings are unaffected. The heatmap is
advisory, so a failed read returns an empty, degraded result instead of raising.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from portaria.config import settings
from portaria.errors import PayloadValidationError
from portaria.schemas.heatmap import HeatmapFilters, HeatmapResult
from portaria.schemas.tracking import ResolvedSteps, TrackingResult, TrackingToken, VisitorUser
from portaria.services.firestore_store import FirestoreStore
from portaria.services.heatmap import HeatmapAggregator
from portaria.services.token_resolver import TokenReferenceResolver, parse_step, stored_reference_text
from portaria.utils.logger import get_logger
from portaria.utils.timeutils import coerce_timestamp, day_window


def empty_tracking() -> TrackingResult:
    return TrackingResult(visitor=None, tokens=[], total_tokens=0, steps_count=0)


def _token_from_doc(doc: dict[str, Any], resolved: ResolvedSteps) -> TrackingToken:
    try:
        return TrackingToken(
            id=doc["id"],
            name=doc.get("name") or "",
            description=doc.get("description"),
            active=bool(doc.get("active", False)),
            created_at=coerce_timestamp(doc.get("created_at")),
            token_ref=f"/tokens/{doc['id']}",
            users_assigned=[stored_reference_text(u) for u in doc.get("users_assigned") or []],
            steps=resolved.steps,
            resolved_via=resolved.resolved_via,
        )
    except (KeyError, ValidationError) as exc:
        raise PayloadValidationError(f"Token document {doc.get('id')!r} is malformed: {exc}") from exc


class TrackingService:
    def __init__(
        self,
        store: FirestoreStore,
        resolver: Optional[TokenReferenceResolver] = None,
        aggregator: Optional[HeatmapAggregator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.logger = logger or get_logger(__name__)
        self.resolver = resolver or TokenReferenceResolver(store, logger=self.logger)
        self.aggregator = aggregator or HeatmapAggregator()

    async def token_steps(self, raw_ref: Any) -> ResolvedSteps:
        return await self.resolver.resolve_steps(raw_ref)

    async def _resolve_isolated(self, token_id: str) -> ResolvedSteps:
        try:
            return await self.resolver.resolve_steps(token_id)
        except Exception as exc:
            self.logger.error(f"[TRACKING] History for token {token_id} failed: {exc}", exc_info=True)
            return ResolvedSteps(token_id=token_id, steps=[], resolved_via="none")

    async def track_visitor(self, name: str) -> TrackingResult:
        users = await self.store.find_users_by_name(name)
        if not users:
            self.logger.info(f"[TRACKING] No visitor named '{name}'")
            return empty_tracking()

        user_doc = users[0]
        try:
            visitor = VisitorUser.model_validate({**user_doc, "uid": user_doc["id"]})
        except (KeyError, ValidationError) as exc:
            raise PayloadValidationError(f"User document {user_doc.get('id')!r} is malformed: {exc}") from exc

        token_docs = await self.store.find_tokens_by_uid(visitor.uid)
        self.logger.info(f"[TRACKING] {visitor.display_name} ({visitor.uid}) has {len(token_docs)} token(s)")

        resolved = await asyncio.gather(*(self._resolve_isolated(doc["id"]) for doc in token_docs))
        tokens = [_token_from_doc(doc, res) for doc, res in zip(token_docs, resolved)]
        steps_count = sum(len(t.steps) for t in tokens)

        self.logger.info(f"[TRACKING] {steps_count} step(s) across {len(tokens)} token(s)")
        return TrackingResult(visitor=visitor, tokens=tokens, total_tokens=len(tokens), steps_count=steps_count)

    async def _track_isolated(self, name: str) -> TrackingResult:
        try:
            return await self.track_visitor(name)
        except Exception as exc:
            self.logger.error(f"[TRACKING] Tracking '{name}' failed: {exc}", exc_info=True)
            return empty_tracking()

    async def track_visitors(self, names: Iterable[str]) -> list[TrackingResult]:
        """One result per name, in order. A failed visitor comes back empty."""
        return list(await asyncio.gather(*(self._track_isolated(n) for n in names)))

    async def heatmap(
        self,
        window_days: Optional[int] = None,
        max_records: Optional[int] = None,
        filters: Optional[HeatmapFilters] = None,
        now: Optional[datetime] = None,
    ) -> HeatmapResult:
        window_days = settings.HEATMAP_DEFAULT_DAYS if window_days is None else window_days
        start, end = day_window(window_days, now)
        self.logger.info(f"[HEATMAP] Steps from {start.isoformat()} to {end.isoformat()} (cap {max_records})")
        try:
            docs = await self.store.steps_between(start, end)
            steps = [parse_step(d) for d in docs]
        except Exception as exc:
            self.logger.error(f"[HEATMAP] Step read failed, returning empty heatmap: {exc}", exc_info=True)
            return self.aggregator.empty(now)

        result = self.aggregator.aggregate(steps, window_days, max_records, filters, now)
        self.logger.info(f"[HEATMAP] {result.total_points} point(s), {len(result.hotspots)} hotspot(s)")
        return result
