"""Shared fixtures for Prahari tests."""

import sys
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from backend.models import RawEvent, SourceSeverityHint, StoryEntry, ThreatLevel
from collectors.base_collector import EventCollector, HintCollector
from fusion_engine.country_resolver import CountryResolver
from fusion_engine.decay_tracker import DecayTracker

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StaticEventCollector(EventCollector):
    def __init__(self, name: str, events=None, error: Exception | None = None, delay: float = 0.0,
                 current_only: bool = False):
        super().__init__(name=name, timeout=1.0)
        self.current_only = current_only
        self.events = list(events or [])
        self.error = error
        self.delay = delay
        self.calls = 0

    async def collect(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.events)


class StaticHintCollector(HintCollector):
    def __init__(self, name: str, hints=None):
        super().__init__(name=name, timeout=1.0)
        self.hints = list(hints or [])

    async def collect(self):
        return list(self.hints)


def make_event(text: str, at: datetime, weight: float = 1.0, lat=None, lon=None, source="test",
               fatalities: int = 0, story: StoryEntry | None = None) -> RawEvent:
    return RawEvent(entity_text=text, occurred_at=at, weight=weight, latitude=lat, longitude=lon,
                    source=source, fatalities=fatalities, story=story)


def make_events(text: str, count: int, at: datetime, **kwargs) -> list[RawEvent]:
    return [make_event(text, at, **kwargs) for _ in range(count)]


def make_story(title: str, at: datetime, casualties: int | None = None) -> StoryEntry:
    return StoryEntry(title=title, source="test", published_at=at, casualties=casualties)


def make_hint(text: str, level: ThreatLevel, source: str, note: str = "") -> SourceSeverityHint:
    return SourceSeverityHint(entity_text=text, hint_level=level, source=source, note=note)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resolver():
    return CountryResolver()


@pytest.fixture
def tracker():
    """Three seeds at 25, started at NOW."""
    return DecayTracker(seed_ids=["ukraine", "sudan", "haiti"], initial_score=25.0, started_at=NOW)
