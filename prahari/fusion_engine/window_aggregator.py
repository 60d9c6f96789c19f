"""Prahari — Rolling Window Aggregator.

Folds a batch of raw events into one CountrySignal per canonical entity
for a half-open window [start, end):

  - location text is resolved through the CountryResolver; misses are
    dropped silently
  - weights are summed per entity
  - map placement uses the coordinates of the single heaviest event that
    carried coordinates (first one wins on ties), falling back to the
    entity's reference point
  - last_event_at is the newest timestamp seen
  - fatalities are summed; attached stories are de-duplicated by title
    and the newest MAX_STORIES kept

Each cycle aggregates two disjoint, equal-length windows:
prior = [now - 2W, now - W) and current = [now - W, now).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from backend.models import CanonicalEntity, CountrySignal, RawEvent, StoryEntry
from fusion_engine.country_resolver import CountryResolver

logger = logging.getLogger("prahari.fusion")

MAX_STORIES = 5


@dataclass
class _Accumulator:
    entity: CanonicalEntity
    count: float = 0.0
    best_weight: float = -1.0
    best_lat: Optional[float] = None
    best_lon: Optional[float] = None
    last_event_at: Optional[datetime] = None
    fatalities: int = 0
    stories: dict[str, StoryEntry] = field(default_factory=dict)

    def newest_stories(self) -> tuple[StoryEntry, ...]:
        ranked = sorted(self.stories.values(), key=lambda s: s.published_at, reverse=True)
        return tuple(ranked[:MAX_STORIES])


def rolling_windows(now: datetime, window: timedelta) -> tuple[tuple[datetime, datetime], tuple[datetime, datetime]]:
    """Return (prior, current) windows ending at `now`."""
    current = (now - window, now)
    prior = (now - 2 * window, now - window)
    return prior, current


def aggregate(
    raw_events: Iterable[RawEvent],
    window_start: datetime,
    window_end: datetime,
    resolver: CountryResolver,
) -> dict[str, CountrySignal]:
    """Aggregate raw events inside [window_start, window_end) by entity."""
    acc: dict[str, _Accumulator] = {}
    dropped = 0

    for event in raw_events:
        if not (window_start <= event.occurred_at < window_end):
            continue

        entity = resolver.resolve(event.entity_text)
        if entity is None:
            dropped += 1
            continue

        cell = acc.get(entity.id)
        if cell is None:
            cell = acc[entity.id] = _Accumulator(entity=entity)

        cell.count += event.weight
        cell.fatalities += event.fatalities
        if event.story is not None:
            cell.stories.setdefault(event.story.title, event.story)

        has_coords = event.latitude is not None and event.longitude is not None
        if has_coords and event.weight > cell.best_weight:
            cell.best_weight = event.weight
            cell.best_lat = event.latitude
            cell.best_lon = event.longitude

        if cell.last_event_at is None or event.occurred_at > cell.last_event_at:
            cell.last_event_at = event.occurred_at

    signals = {
        entity_id: CountrySignal(
            entity=cell.entity,
            window_event_count=cell.count,
            best_lat=cell.best_lat if cell.best_lat is not None else cell.entity.reference_lat,
            best_lon=cell.best_lon if cell.best_lon is not None else cell.entity.reference_lon,
            last_event_at=cell.last_event_at,
            fatalities=cell.fatalities,
            stories=cell.newest_stories(),
        )
        for entity_id, cell in acc.items()
    }

    logger.debug(
        "[aggregator] Window %s → %s: %d entities, %d unresolved events dropped",
        window_start.isoformat(), window_end.isoformat(), len(signals), dropped,
    )
    return signals
