"""Sanity checks on the static fallback list."""

from backend.models import ConflictState
from fusion_engine.fallback_threats import FALLBACK_THREATS
from fusion_engine.scoring import classify_level, classify_state
from fusion_engine.source_merger import order_records


def test_levels_match_scores():
    for record in FALLBACK_THREATS:
        assert classify_level(record.score) == record.level
        assert classify_state(record.score) == ConflictState.ACTIVE == record.conflict_state


def test_unique_ids_and_codes():
    ids = [r.id for r in FALLBACK_THREATS]
    assert len(ids) == len(set(ids))
    assert all(r.country_code for r in FALLBACK_THREATS)


def test_already_in_output_order():
    assert list(FALLBACK_THREATS) == order_records(FALLBACK_THREATS)
