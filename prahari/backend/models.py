"""Prahari — Threat Signal Schema & Data Models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ThreatLevel(str, Enum):
    """Threat levels, ordered low → critical."""
    LOW = "low"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    ThreatLevel.LOW: 0,
    ThreatLevel.ELEVATED: 1,
    ThreatLevel.HIGH: 2,
    ThreatLevel.CRITICAL: 3,
}


class Direction(str, Enum):
    RISING = "rising"
    STABLE = "stable"
    COOLING = "cooling"


class ConflictState(str, Enum):
    """Coarse conflict state; inactive entities are never emitted."""
    ACTIVE = "active"
    ESCALATING = "escalating"
    INACTIVE = "inactive"


class CanonicalEntity(BaseModel):
    """A country (or territory) that location text resolves to."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    reference_lat: float = Field(ge=-90, le=90)
    reference_lon: float = Field(ge=-180, le=180)
    country_code: Optional[str] = None


class StoryEntry(BaseModel):
    """A headline attached to a threat record for display."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str
    summary: str = ""
    link: str = ""
    source: str
    published_at: AwareDatetime
    casualties: Optional[int] = None


class RawEvent(BaseModel):
    """Unified event schema — every event adapter normalizes to this."""
    entity_text: str = Field(min_length=1)
    occurred_at: AwareDatetime
    weight: float = Field(default=1.0, gt=0)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    source: str = "unknown"
    fatalities: int = Field(default=0, ge=0)
    story: Optional[StoryEntry] = None


class SourceSeverityHint(BaseModel):
    """Coarse per-entity severity from a secondary source (no time granularity)."""
    entity_text: str = Field(min_length=1)
    hint_level: ThreatLevel
    source: str
    note: str = ""


class CountrySignal(BaseModel):
    """Aggregated evidence for one entity over one window."""
    model_config = ConfigDict(frozen=True)

    entity: CanonicalEntity
    window_event_count: float = Field(ge=0)
    best_lat: float
    best_lon: float
    last_event_at: datetime
    fatalities: int = 0
    stories: tuple[StoryEntry, ...] = ()


class SeedBaseline(BaseModel):
    """Floating baseline score held by the decay tracker."""
    entity_id: str
    score: float = Field(ge=0)
    last_decay_applied_at: datetime


class ThreatRecord(BaseModel):
    """One emitted hotspot."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    lat: float
    lon: float
    level: ThreatLevel
    score: float = Field(ge=0)
    direction: Direction = Direction.STABLE
    acceleration_pct: float = 0.0
    recent_event_count: float = 0.0
    last_event_at: Optional[datetime] = None
    conflict_state: ConflictState
    country_code: Optional[str] = None
    description: str = ""
    fatalities: int = 0
    has_new: bool = False
    stories: list[StoryEntry] = Field(default_factory=list)


class CachedResult(BaseModel):
    """Published snapshot of one aggregation cycle."""
    model_config = ConfigDict(frozen=True)

    records: tuple[ThreatRecord, ...]
    computed_at: datetime
    expires_at: datetime
    from_fallback: bool = False

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at


class ThreatsResponse(BaseModel):
    """Outbound payload for GET /api/threats."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    threats: list[ThreatRecord]
    affected_entity_codes: list[str] = Field(default_factory=list)
    updated_at: datetime
