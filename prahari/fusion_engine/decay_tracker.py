"""Prahari — Seed Decay Tracker.

Long-running conflicts are pinned with a floating baseline score so they
do not vanish from the map the moment reporting goes quiet (feed outage,
news-cycle rotation). Each baseline:

  - decays by DECAY_RATE per whole elapsed interval of wall-clock time,
    whether or not new events arrived
  - is reinforced upward to the freshly computed live score, never down
  - is emitted only while its score stays in the "active" band

Per cycle the order is fixed: decay → reinforce → classify, so a fresh
event can never be decayed away in the cycle it arrived.

Example (rate 0.97, active threshold 10): a seed at 25 is still active
after 30 quiet days (≈10.0) and is dropped on day 31 (≈9.7).
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from backend.models import ConflictState, SeedBaseline
from fusion_engine.scoring import DEFAULT_PARAMS, ScoringParams, classify_state

logger = logging.getLogger("prahari.fusion")


def intervals_until_below(score: float, threshold: float, decay_rate: float) -> int:
    """Number of whole decay intervals before `score` drops under `threshold`."""
    if score < threshold:
        return 0
    if threshold <= 0:
        raise ValueError("threshold must be positive")
    return math.floor(math.log(threshold / score) / math.log(decay_rate)) + 1


class DecayTracker:
    """Process-lifetime map of entity id → SeedBaseline."""

    def __init__(
        self,
        seed_ids: Iterable[str],
        initial_score: float,
        started_at: datetime,
        decay_rate: float = 0.97,
        interval: timedelta = timedelta(days=1),
    ):
        if not 0 < decay_rate < 1:
            raise ValueError(f"decay_rate must be in (0, 1), got {decay_rate}")
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        if initial_score < 0:
            raise ValueError("initial_score must be >= 0")

        self._decay_rate = decay_rate
        self._interval = interval
        self._last_decay_at = started_at
        self._baselines: dict[str, SeedBaseline] = {
            entity_id: SeedBaseline(
                entity_id=entity_id,
                score=initial_score,
                last_decay_applied_at=started_at,
            )
            for entity_id in seed_ids
        }
        logger.info(
            "[decay] Tracking %d seed entities (initial=%.1f, rate=%.3f per %s)",
            len(self._baselines), initial_score, decay_rate, interval,
        )

    @property
    def decay_rate(self) -> float:
        return self._decay_rate

    @property
    def last_decay_at(self) -> datetime:
        return self._last_decay_at

    def is_tracked(self, entity_id: str) -> bool:
        return entity_id in self._baselines

    def get(self, entity_id: str) -> Optional[SeedBaseline]:
        baseline = self._baselines.get(entity_id)
        return baseline.model_copy() if baseline else None

    def apply_decay(self, now: datetime) -> int:
        """Decay every baseline by the whole intervals elapsed since the last pass.

        The clock advances by exactly `intervals * interval`, so the
        sub-interval remainder carries over to the next call.
        """
        intervals = (now - self._last_decay_at) // self._interval
        if intervals <= 0:
            return 0

        factor = self._decay_rate ** intervals
        self._last_decay_at += intervals * self._interval
        for baseline in self._baselines.values():
            baseline.score *= factor
            baseline.last_decay_applied_at = self._last_decay_at

        logger.debug("[decay] Applied %d interval(s) (factor=%.4f)", intervals, factor)
        return intervals

    def reinforce(self, entity_id: str, fresh_score: float) -> Optional[SeedBaseline]:
        """Raise a tracked baseline to `fresh_score` if that is higher."""
        baseline = self._baselines.get(entity_id)
        if baseline is None:
            return None
        if fresh_score > baseline.score:
            baseline.score = float(fresh_score)
        return baseline.model_copy()

    def active_baselines(self, params: ScoringParams = DEFAULT_PARAMS) -> list[SeedBaseline]:
        """Baselines still in the active band, ordered by entity id."""
        return [
            baseline.model_copy()
            for entity_id, baseline in sorted(self._baselines.items())
            if classify_state(baseline.score, params) == ConflictState.ACTIVE
        ]

    def intervals_until_inactive(self, entity_id: str, params: ScoringParams = DEFAULT_PARAMS) -> Optional[int]:
        baseline = self._baselines.get(entity_id)
        if baseline is None:
            return None
        return intervals_until_below(baseline.score, params.state_active, self._decay_rate)

    def snapshot(self) -> list[SeedBaseline]:
        return [b.model_copy() for _, b in sorted(self._baselines.items())]
