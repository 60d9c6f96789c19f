"""Prahari — Severity Scoring Engine.

Turns the current-window and prior-window event counts for one entity
into a severity score, a trend direction and a threat level.

  rate     = (current - prior) / prior          if prior > 0
           = NEW_SIGNAL_RATE                    if prior == 0 and current > 0
           = 0                                  otherwise
  modifier = clamp(rate * ACCEL_WEIGHT, ACCEL_MAX_PENALTY, ACCEL_MAX_BOOST)
  score    = round(current * BASE_WEIGHT * (1 + modifier))

The clamp is asymmetric (+0.30 / -0.15): a rising signal may move the
score twice as far as a cooling one.

Level ladder (score >= value):   critical 80, high 40, elevated 15, else low
State ladder (score >= value):   active 10, escalating 3, else inactive
"""

from dataclasses import dataclass
from typing import Optional

from backend.models import ConflictState, Direction, ThreatLevel


@dataclass(frozen=True)
class ScoringParams:
    """Tunable constants of the scoring model."""
    base_weight: float = 2.0
    new_signal_rate: float = 0.5
    accel_weight: float = 0.3
    accel_max_boost: float = 0.30
    accel_max_penalty: float = -0.15
    direction_threshold_pct: float = 10.0
    level_critical: float = 80.0
    level_high: float = 40.0
    level_elevated: float = 15.0
    state_active: float = 10.0
    state_escalating: float = 3.0

    @classmethod
    def from_settings(cls, s) -> "ScoringParams":
        return cls(
            base_weight=s.base_weight,
            new_signal_rate=s.new_signal_rate,
            accel_weight=s.accel_weight,
            accel_max_boost=s.accel_max_boost,
            accel_max_penalty=s.accel_max_penalty,
            direction_threshold_pct=s.direction_threshold_pct,
            level_critical=s.level_critical,
            level_high=s.level_high,
            level_elevated=s.level_elevated,
            state_active=s.state_active,
            state_escalating=s.state_escalating,
        )


DEFAULT_PARAMS = ScoringParams()


@dataclass(frozen=True)
class ScoreResult:
    score: int
    direction: Direction
    level: ThreatLevel
    acceleration_rate: float
    acceleration_pct: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def acceleration_rate(current: float, prior: float, params: ScoringParams = DEFAULT_PARAMS) -> float:
    """Proportional change between the prior and the current window."""
    if prior > 0:
        return (current - prior) / prior
    return params.new_signal_rate if current > 0 else 0.0


def classify_level(score: float, params: ScoringParams = DEFAULT_PARAMS) -> ThreatLevel:
    if score >= params.level_critical:
        return ThreatLevel.CRITICAL
    if score >= params.level_high:
        return ThreatLevel.HIGH
    if score >= params.level_elevated:
        return ThreatLevel.ELEVATED
    return ThreatLevel.LOW


def classify_state(score: float, params: ScoringParams = DEFAULT_PARAMS) -> ConflictState:
    if score >= params.state_active:
        return ConflictState.ACTIVE
    if score >= params.state_escalating:
        return ConflictState.ESCALATING
    return ConflictState.INACTIVE


def classify_direction(acceleration_pct: float, params: ScoringParams = DEFAULT_PARAMS) -> Direction:
    if acceleration_pct > params.direction_threshold_pct:
        return Direction.RISING
    if acceleration_pct < -params.direction_threshold_pct:
        return Direction.COOLING
    return Direction.STABLE


def score_signal(
    current: float,
    prior: float,
    params: ScoringParams = DEFAULT_PARAMS,
    trend_current: Optional[float] = None,
) -> ScoreResult:
    """Score one entity from its current and prior window counts. Pure.

    `current` drives volume. Acceleration compares `prior` with
    `trend_current`, the part of the current count drawn from sources that
    also cover the prior window; it defaults to `current`.
    """
    current = max(0.0, float(current))
    prior = max(0.0, float(prior))
    trend = current if trend_current is None else max(0.0, float(trend_current))

    rate = acceleration_rate(trend, prior, params)
    modifier = _clamp(rate * params.accel_weight, params.accel_max_penalty, params.accel_max_boost)
    score = max(0, round(current * params.base_weight * (1 + modifier)))
    pct = round(rate * 100, 1)

    return ScoreResult(
        score=score,
        direction=classify_direction(pct, params),
        level=classify_level(score, params),
        acceleration_rate=rate,
        acceleration_pct=pct,
    )
