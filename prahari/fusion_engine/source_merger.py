"""Prahari — Secondary Source Merger.

Folds coarse severity hints from secondary sources into the primary,
event-count-derived threat set. Precedence is an explicit ordered list,
never adapter completion order:

  1. crisis_watch — International Crisis Group / Army Recognition
  2. reliefweb    — ReliefWeb humanitarian reports

Rules (upgrade-only):
  - entity already present: raise its level when the hint outranks it,
    never lower it; append a provenance tag
  - entity absent: add a hint-only record with zero score, stable
    direction and the "escalating" state — secondary sources corroborate,
    they never promote an entity to "active" on their own
"""

import logging
from typing import Iterable, Mapping, Sequence

from backend.models import (
    CanonicalEntity,
    ConflictState,
    Direction,
    SourceSeverityHint,
    ThreatRecord,
)
from fusion_engine.country_resolver import CountryResolver

logger = logging.getLogger("prahari.fusion")

DEFAULT_SOURCE_ORDER: tuple[str, ...] = ("crisis_watch", "reliefweb")

SOURCE_LABELS = {
    "crisis_watch": "Crisis Group",
    "reliefweb": "ReliefWeb",
}


def source_label(source: str) -> str:
    return SOURCE_LABELS.get(source, source)


def ordered_sources(available: Iterable[str], source_order: Sequence[str] = DEFAULT_SOURCE_ORDER) -> list[str]:
    """Known sources in precedence order, then any others alphabetically."""
    available = set(available)
    known = [s for s in source_order if s in available]
    extra = sorted(available - set(source_order))
    return known + extra


def _strongest_hints(
    hints: Iterable[SourceSeverityHint],
    resolver: CountryResolver,
) -> dict[str, tuple[SourceSeverityHint, CanonicalEntity]]:
    strongest: dict[str, tuple[SourceSeverityHint, CanonicalEntity]] = {}
    for hint in hints:
        entity = resolver.resolve(hint.entity_text)
        if entity is None:
            continue
        current = strongest.get(entity.id)
        if current is None or hint.hint_level.rank > current[0].hint_level.rank:
            strongest[entity.id] = (hint, entity)
    return strongest


def _hint_only_record(hint: SourceSeverityHint, entity: CanonicalEntity) -> ThreatRecord:
    label = source_label(hint.source)
    note = hint.note or "flagged as an ongoing crisis"
    return ThreatRecord(
        id=entity.id,
        name=entity.display_name,
        lat=entity.reference_lat,
        lon=entity.reference_lon,
        level=hint.hint_level,
        score=0.0,
        direction=Direction.STABLE,
        acceleration_pct=0.0,
        recent_event_count=0.0,
        last_event_at=None,
        conflict_state=ConflictState.ESCALATING,
        country_code=entity.country_code,
        description=f"{entity.display_name} — {note} ({label})",
    )


def merge(
    primary_records: Iterable[ThreatRecord],
    hint_batches: Mapping[str, Iterable[SourceSeverityHint]],
    resolver: CountryResolver,
    source_order: Sequence[str] = DEFAULT_SOURCE_ORDER,
) -> dict[str, ThreatRecord]:
    """Merge secondary hints into the primary records (upgrade-only).

    Input records are never modified; changed records are copies.
    """
    merged: dict[str, ThreatRecord] = {r.id: r for r in primary_records}
    upgraded = added = 0

    for source in ordered_sources(hint_batches.keys(), source_order):
        tag = f" · corroborated by {source_label(source)}"
        strongest = _strongest_hints(hint_batches[source], resolver)

        for entity_id in sorted(strongest):
            hint, entity = strongest[entity_id]
            existing = merged.get(entity_id)

            if existing is None:
                merged[entity_id] = _hint_only_record(hint, entity)
                added += 1
                continue

            update: dict = {}
            if hint.hint_level.rank > existing.level.rank:
                update["level"] = hint.hint_level
                upgraded += 1
            if tag not in existing.description:
                update["description"] = existing.description + tag
            if update:
                merged[entity_id] = existing.model_copy(update=update)

    logger.info("[merger] %d records after merge (%d upgraded, %d hint-only added)",
                len(merged), upgraded, added)
    return merged


def order_records(records: Iterable[ThreatRecord]) -> list[ThreatRecord]:
    """Sort by level desc, then score desc, then name for a stable order."""
    return sorted(records, key=lambda r: (-r.level.rank, -r.score, r.name))
