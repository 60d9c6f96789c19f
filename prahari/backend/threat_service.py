"""Prahari — Threat Aggregation Service.

Owns the only mutable state in the pipeline (result cache + decay
tracker) and runs one aggregation cycle at a time:

  adapters (concurrent) → window aggregator (prior + current)
    → scoring → decay tracker (decay → reinforce → seeds)
    → source merger → ordered CachedResult

Callers never see an exception: adapter errors degrade to empty batches,
and a total failure serves the static fallback list with a short TTL.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from backend.models import (
    CachedResult,
    ConflictState,
    CountrySignal,
    Direction,
    RawEvent,
    SeedBaseline,
    SourceSeverityHint,
    ThreatRecord,
    ThreatsResponse,
)
from collectors.base_collector import EventCollector, HintCollector
from fusion_engine.country_resolver import CountryResolver
from fusion_engine.decay_tracker import DecayTracker
from fusion_engine.fallback_threats import FALLBACK_THREATS
from fusion_engine.scoring import (
    DEFAULT_PARAMS,
    ScoreResult,
    ScoringParams,
    classify_level,
    classify_state,
    score_signal,
)
from fusion_engine.source_merger import DEFAULT_SOURCE_ORDER, merge, order_records
from fusion_engine.window_aggregator import aggregate, rolling_windows

logger = logging.getLogger("prahari.service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ThreatAggregationService:
    """Single writer for the result cache and the seed baselines."""

    def __init__(
        self,
        event_collectors: Sequence[EventCollector],
        hint_collectors: Sequence[HintCollector] = (),
        resolver: Optional[CountryResolver] = None,
        tracker: Optional[DecayTracker] = None,
        params: ScoringParams = DEFAULT_PARAMS,
        window: timedelta = timedelta(days=7),
        cache_ttl: timedelta = timedelta(seconds=900),
        fallback_ttl: timedelta = timedelta(seconds=60),
        source_order: Sequence[str] = DEFAULT_SOURCE_ORDER,
        new_story_window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._event_collectors = list(event_collectors)
        self._hint_collectors = list(hint_collectors)
        self._resolver = resolver or CountryResolver()
        self._clock = clock
        self._tracker = tracker or DecayTracker(seed_ids=(), initial_score=0.0, started_at=clock())
        self._params = params
        self._window = window
        self._cache_ttl = cache_ttl
        self._fallback_ttl = fallback_ttl
        self._source_order = tuple(source_order)
        self._new_story_window = new_story_window

        self._cached: Optional[CachedResult] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def cached(self) -> Optional[CachedResult]:
        return self._cached

    # ── Public API ─────────────────────────────────

    async def get_or_compute(self, force: bool = False) -> CachedResult:
        """Return the published result, recomputing when stale or forced.

        Concurrent callers share one in-flight computation; `force` skips
        the freshness check but still joins a run already under way.
        """
        if not force and self._cached is not None and self._cached.is_fresh(self._clock()):
            return self._cached

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run_cycle())
        return await asyncio.shield(self._inflight)

    async def query(self, force: bool = False) -> ThreatsResponse:
        result = await self.get_or_compute(force=force)
        codes = list(dict.fromkeys(r.country_code for r in result.records if r.country_code))
        return ThreatsResponse(
            threats=list(result.records),
            affected_entity_codes=codes,
            updated_at=result.computed_at,
        )

    def seed_snapshot(self) -> list[SeedBaseline]:
        return self._tracker.snapshot()

    async def aclose(self):
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        for collector in (*self._event_collectors, *self._hint_collectors):
            await collector.stop()

    # ── Cycle ──────────────────────────────────────

    async def _run_cycle(self) -> CachedResult:
        try:
            result = await self._compute()
        except Exception:
            logger.exception("[service] Aggregation cycle failed — serving fallback")
            result = self._fallback_result(self._clock())
        self._cached = result
        return result

    async def _collect(self) -> tuple[list[list[RawEvent]], dict[str, list[SourceSeverityHint]]]:
        results = await asyncio.gather(
            *(c.safe_collect() for c in self._event_collectors),
            *(c.safe_collect() for c in self._hint_collectors),
        )
        n = len(self._event_collectors)
        event_batches = [list(batch) for batch in results[:n]]

        hint_batches: dict[str, list[SourceSeverityHint]] = {}
        for collector, batch in zip(self._hint_collectors, results[n:]):
            hint_batches.setdefault(collector.name, []).extend(batch)
        return event_batches, hint_batches

    async def _compute(self) -> CachedResult:
        now = self._clock()
        event_batches, hint_batches = await self._collect()

        if not any(event_batches):
            logger.warning("[service] All %d event sources returned nothing — serving fallback",
                           len(event_batches))
            return self._fallback_result(now)

        events = [e for batch in event_batches for e in batch]
        # Sources that cannot see the prior window stay out of the trend
        trend_events = [
            e
            for collector, batch in zip(self._event_collectors, event_batches)
            if not collector.current_only
            for e in batch
        ]
        (prior_start, prior_end), (current_start, current_end) = rolling_windows(now, self._window)
        current = aggregate(events, current_start, current_end, self._resolver)
        current_trend = aggregate(trend_events, current_start, current_end, self._resolver)
        prior = aggregate(trend_events, prior_start, prior_end, self._resolver)

        # Decay strictly before reinforcement
        self._tracker.apply_decay(now)

        records: dict[str, ThreatRecord] = {}
        for entity_id in sorted(current):
            signal = current[entity_id]
            prior_count = prior[entity_id].window_event_count if entity_id in prior else 0.0
            trend_count = current_trend[entity_id].window_event_count if entity_id in current_trend else 0.0
            result = score_signal(signal.window_event_count, prior_count, self._params,
                                  trend_current=trend_count)

            score = float(result.score)
            baseline = self._tracker.reinforce(entity_id, score)
            # Only an active baseline holds a record up
            if baseline is not None and classify_state(baseline.score, self._params) == ConflictState.ACTIVE:
                score = max(score, baseline.score)

            record = self._live_record(signal, result, score, now)
            if record is not None:
                records[entity_id] = record

        for baseline in self._tracker.active_baselines(self._params):
            if baseline.entity_id in records:
                continue
            record = self._seed_record(baseline)
            if record is not None:
                records[baseline.entity_id] = record

        merged = merge(records.values(), hint_batches, self._resolver, self._source_order)
        ordered = tuple(order_records(merged.values()))

        logger.info("[service] Cycle complete: %d events, %d records (%d live, %d hint sources)",
                    len(events), len(ordered), len(records), len(hint_batches))
        return CachedResult(
            records=ordered,
            computed_at=now,
            expires_at=now + self._cache_ttl,
            from_fallback=False,
        )

    # ── Record builders ────────────────────────────

    def _live_record(
        self, signal: CountrySignal, result: ScoreResult, score: float, now: datetime,
    ) -> Optional[ThreatRecord]:
        """Build a record from a live signal; `score` is classified before rounding."""
        state = classify_state(score, self._params)
        if state == ConflictState.INACTIVE:
            return None

        entity = signal.entity
        count = signal.window_event_count
        days = self._window.days or 1
        activity = f"{count:g} events"
        if signal.fatalities:
            activity += f", {signal.fatalities} fatalities"
        return ThreatRecord(
            id=entity.id,
            name=entity.display_name,
            lat=signal.best_lat,
            lon=signal.best_lon,
            level=classify_level(score, self._params),
            score=round(score, 1),
            direction=result.direction,
            acceleration_pct=result.acceleration_pct,
            recent_event_count=count,
            last_event_at=signal.last_event_at,
            conflict_state=state,
            country_code=entity.country_code,
            description=(
                f"{entity.display_name} — {activity} in {days}d, "
                f"{result.direction.value} ({result.acceleration_pct:+.1f}%)"
            ),
            fatalities=signal.fatalities,
            has_new=any(now - story.published_at < self._new_story_window for story in signal.stories),
            stories=list(signal.stories),
        )

    def _seed_record(self, baseline: SeedBaseline) -> Optional[ThreatRecord]:
        entity = self._resolver.get(baseline.entity_id)
        if entity is None:
            logger.warning("[service] Seed %s has no entity entry", baseline.entity_id)
            return None

        return ThreatRecord(
            id=entity.id,
            name=entity.display_name,
            lat=entity.reference_lat,
            lon=entity.reference_lon,
            level=classify_level(baseline.score, self._params),
            score=round(baseline.score, 1),
            direction=Direction.STABLE,
            acceleration_pct=0.0,
            recent_event_count=0.0,
            last_event_at=None,
            conflict_state=classify_state(baseline.score, self._params),
            country_code=entity.country_code,
            description=f"{entity.display_name} — ongoing conflict, no recent reports",
        )

    def _fallback_result(self, now: datetime) -> CachedResult:
        return CachedResult(
            records=FALLBACK_THREATS,
            computed_at=now,
            expires_at=now + self._fallback_ttl,
            from_fallback=True,
        )


def build_service(s) -> ThreatAggregationService:
    """Wire the production adapters and tracker from Settings."""
    from collectors.acled_collector import ACLEDCollector
    from collectors.conflict_feed_collector import ConflictFeedCollector
    from collectors.crisis_watch_collector import CrisisWatchCollector
    from collectors.gdelt_collector import GDELTCollector
    from collectors.reliefweb_collector import ReliefWebCollector

    lookback_days = 2 * s.rolling_window_days
    timeout = s.adapter_timeout_seconds

    event_collectors = [
        ACLEDCollector(s.acled_api_key, s.acled_email, lookback_days=lookback_days,
                       api_url=s.acled_api_url, timeout=timeout),
        GDELTCollector(window_days=s.rolling_window_days, doc_url=s.gdelt_doc_url, timeout=timeout),
        ConflictFeedCollector(feed_url=s.conflict_feed_url, timeout=timeout),
    ]
    hint_collectors = [
        CrisisWatchCollector(feed_urls=s.crisis_watch_feeds, timeout=timeout),
        ReliefWebCollector(api_url=s.reliefweb_url, appname=s.reliefweb_appname, timeout=timeout),
    ]

    started_at = _utcnow()
    tracker = DecayTracker(
        seed_ids=s.seed_entity_ids,
        initial_score=s.seed_initial_score,
        started_at=started_at,
        decay_rate=s.decay_rate,
        interval=timedelta(hours=s.decay_interval_hours),
    )

    return ThreatAggregationService(
        event_collectors=event_collectors,
        hint_collectors=hint_collectors,
        resolver=CountryResolver(),
        tracker=tracker,
        params=ScoringParams.from_settings(s),
        window=timedelta(days=s.rolling_window_days),
        cache_ttl=timedelta(seconds=s.cache_ttl_seconds),
        fallback_ttl=timedelta(seconds=s.fallback_ttl_seconds),
        source_order=s.hint_source_order,
        new_story_window=timedelta(hours=s.new_story_hours),
    )
